"""
Data Models Package

This package contains all Pydantic models used in Expense Ledger.
All data flowing between handlers and storage must conform to these schemas.
"""

from expense_ledger.models.ledger import (
    Account,
    AccountPayload,
    AccountType,
    Page,
    Transaction,
    TransactionDraft,
    TransactionPatch,
    TransactionType,
    allowed_values,
    format_timestamp,
    parse_timestamp,
)
from expense_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "AccountPayload",
    "AccountType",
    "Page",
    "Transaction",
    "TransactionDraft",
    "TransactionPatch",
    "TransactionType",
    "allowed_values",
    "format_timestamp",
    "parse_timestamp",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
