"""
Configuration Management for Expense Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here, so there is exactly one place that
lists what the service reads from its environment.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection pool configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: Optional[str] = Field(
        default=None,
        description="libpq connection string; unset means in-memory storage"
    )
    pool_min_size: int = Field(
        default=1,
        ge=1,
        description="Connections opened eagerly when the pool is created"
    )
    pool_max_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Upper bound on pooled connections"
    )
    connect_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times to try opening the pool at startup"
    )

    @field_validator("url")
    @classmethod
    def blank_url_is_unset(cls, v: Optional[str]) -> Optional[str]:
        """Treat DATABASE_URL= (empty) the same as not configured."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def is_configured(self) -> bool:
        return self.url is not None


class ServerSettings(BaseSettings):
    """
    HTTP server settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)"
    )

    # Listener
    host: str = Field(
        default="0.0.0.0",
        description="Interface to bind"
    )
    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="TCP port (read from PORT)"
    )

    # Request limits
    max_body_bytes: int = Field(
        default=1024 * 1024,
        ge=1,
        description="Maximum accepted request body size in bytes"
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: sub-settings are loaded lazily to allow partial configuration

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def server(self) -> ServerSettings:
        return ServerSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with an extra
    "<name>_error" entry describing each failure.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.database
        results["database"] = True
    except Exception as e:
        results["database"] = False
        results["database_error"] = str(e)

    try:
        _ = settings.server
        results["server"] = True
    except Exception as e:
        results["server"] = False
        results["server_error"] = str(e)

    return results
