"""
Audit Models for Expense Ledger

Every change to stored data, and every storage failure, is recorded as an
audit event. This provides:
1. Traceability of who changed what, and when
2. Debugging information when a request fails server-side
3. A correlation id tying together the events of one request

Audit events are append-only. They are never modified after creation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator


DESCRIPTION_LIMIT = 500


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"

    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of the audit trail.
    Every mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity ('account' or 'transaction')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - events raised while serving one request
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by all events of one request"
    )

    description: str = Field(
        ...,
        max_length=DESCRIPTION_LIMIT,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    @field_validator("description", mode="before")
    @classmethod
    def clip_description(cls, v: Any) -> Any:
        """Account names are unbounded; cut long descriptions to fit."""
        if isinstance(v, str) and len(v) > DESCRIPTION_LIMIT:
            return v[: DESCRIPTION_LIMIT - 3] + "..."
        return v

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.account_created(account_id, name, type, correlation_id)
        event = AuditEventBuilder.storage_error("delete_transaction", str(exc), correlation_id)
    """

    @staticmethod
    def account_created(
        account_id: str,
        name: str,
        account_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account created: {name}",
            details={"name": name, "type": account_type},
        )

    @staticmethod
    def account_updated(
        account_id: str,
        name: str,
        account_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_UPDATED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account updated: {name}",
            details={"name": name, "type": account_type},
        )

    @staticmethod
    def account_deleted(
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description="Account deleted with its transactions",
        )

    @staticmethod
    def transaction_created(
        transaction_id: str,
        account_id: str,
        amount: str,
        transaction_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction created: {transaction_type} {amount}",
            details={
                "account_id": account_id,
                "amount": amount,
                "type": transaction_type,
            },
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        account_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction updated",
            details={
                "account_id": account_id,
                "fields": sorted(fields),
            },
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            details={"account_id": account_id},
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Storage operation failed: {operation}",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )
