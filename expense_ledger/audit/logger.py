"""
Audit Logger

Every mutation of stored data is logged, as is every storage failure.
This provides:
1. Complete traceability
2. Debugging capability for 500 responses (the client never sees details)

The audit logger:
- Writes structured JSON lines through structlog
- Never raises: a logging failure must not fail the request
- Supports correlation IDs to trace the events of one request
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def configure_logging(level: str = "INFO") -> None:
    """
    Configure stdlib logging and structlog for JSON output on stdout.

    Safe to call more than once; the last call wins.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    One instance is shared by all handlers; it holds no per-request state.
    """

    def __init__(self, logger_name: str = "expense_ledger.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the event was written.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            # Logging must never break request handling
            logging.getLogger(__name__).exception("audit logging failed")
            return False

        return True

    def log_account_created(
        self,
        account_id: str,
        name: str,
        account_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log account creation."""
        self.log(AuditEventBuilder.account_created(
            account_id=account_id,
            name=name,
            account_type=account_type,
            correlation_id=correlation_id,
        ))

    def log_account_updated(
        self,
        account_id: str,
        name: str,
        account_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log account update."""
        self.log(AuditEventBuilder.account_updated(
            account_id=account_id,
            name=name,
            account_type=account_type,
            correlation_id=correlation_id,
        ))

    def log_account_deleted(
        self,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.account_deleted(
            account_id=account_id,
            correlation_id=correlation_id,
        ))

    def log_transaction_created(
        self,
        transaction_id: str,
        account_id: str,
        amount: str,
        transaction_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log transaction creation."""
        self.log(AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            account_id=account_id,
            amount=amount,
            transaction_type=transaction_type,
            correlation_id=correlation_id,
        ))

    def log_transaction_updated(
        self,
        transaction_id: str,
        account_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a partial update, naming the fields that were supplied."""
        self.log(AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            account_id=account_id,
            fields=fields,
            correlation_id=correlation_id,
        ))

    def log_transaction_deleted(
        self,
        transaction_id: str,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            account_id=account_id,
            correlation_id=correlation_id,
        ))

    def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed storage call. The message stays server-side."""
        self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an unexpected error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    The application creates one per request and hands it to the handler.
    """
    return uuid4()
