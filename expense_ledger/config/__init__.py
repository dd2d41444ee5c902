"""Configuration package."""

from expense_ledger.config.settings import (
    DatabaseSettings,
    ServerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "DatabaseSettings",
    "ServerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
