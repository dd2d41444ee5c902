"""
Core Data Models for Expense Ledger

These models define the schemas for all data flowing between the HTTP
handlers and the storage layer. They are designed to:
1. Enforce the enumerated account and transaction types
2. Serialize to the exact JSON shape clients receive
3. Carry field presence for partial updates

Identifiers are opaque strings assigned by storage; a model that has not
been persisted yet has an empty id.
"""

import re
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountType(str, Enum):
    """Kinds of account a user can track."""
    BANK = "bank"
    CASH = "cash"
    OTHER = "other"


class TransactionType(str, Enum):
    """
    Transaction category.

    Independent of the amount's sign: a negative income is still income.
    """
    INCOME = "income"
    EXPENSE = "expense"


def allowed_values(enum_cls: type[Enum]) -> str:
    """Comma-separated list of an enum's values, in declaration order."""
    return ", ".join(member.value for member in enum_cls)


# =============================================================================
# TIMESTAMPS - RFC 3339 on the wire
# =============================================================================

_RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an RFC 3339 date-time (e.g. 2024-01-15T10:30:00Z).

    The offset is mandatory. Fractional seconds beyond microseconds are
    truncated.

    Raises:
        ValueError: If the text is not an RFC 3339 date-time
    """
    match = _RFC3339.fullmatch(value)
    if match is None:
        raise ValueError(f"not an RFC 3339 timestamp: {value!r}")

    day, clock, fraction, offset = match.groups()
    if offset in ("Z", "z"):
        offset = "+00:00"
    micros = (fraction or "").ljust(6, "0")[:6]
    return datetime.fromisoformat(f"{day}T{clock}.{micros}{offset}")


def format_timestamp(value: datetime) -> str:
    """Render a datetime as RFC 3339, using Z for UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


# =============================================================================
# RESOURCES
# =============================================================================

class Account(BaseModel):
    """A named financial container (bank account, wallet, ...)."""

    id: str = Field(
        default="",
        description="Server-assigned identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Display name"
    )
    type: AccountType = Field(
        ...,
        description="Account kind"
    )


class Transaction(BaseModel):
    """
    A dated monetary event belonging to exactly one account.

    account_id is fixed at creation; updates never move a transaction
    between accounts.
    """

    id: str = Field(
        default="",
        description="Server-assigned identifier"
    )
    account_id: str = Field(
        ...,
        min_length=1,
        description="Owning account"
    )
    amount: Decimal = Field(
        default=Decimal("0"),
        description="Signed amount; the sign carries no meaning"
    )
    date: datetime = Field(
        ...,
        description="When the transaction happened"
    )
    description: str = Field(
        default="",
        description="Free text"
    )
    type: TransactionType = Field(
        ...,
        description="Income or expense"
    )

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)

    @field_serializer("date")
    def serialize_date(self, value: datetime) -> str:
        return format_timestamp(value)


# =============================================================================
# REQUEST PAYLOADS
# =============================================================================

class AccountPayload(BaseModel):
    """Body of account create and update; both fields always required."""

    name: str = Field(..., min_length=1)
    type: AccountType

    def to_account(self, account_id: str = "") -> Account:
        return Account(id=account_id, name=self.name, type=self.type)


class TransactionDraft(BaseModel):
    """Body of transaction create, after defaults have been applied."""

    amount: Decimal = Decimal("0")
    date: datetime
    description: str = ""
    type: TransactionType

    def to_transaction(self, account_id: str) -> Transaction:
        return Transaction(
            account_id=account_id,
            amount=self.amount,
            date=self.date,
            description=self.description,
            type=self.type,
        )


class TransactionPatch(BaseModel):
    """
    Body of a partial transaction update.

    Every field is optional. Whether a field was supplied is tracked by
    pydantic's model_fields_set, so a patch built from {"amount": 5}
    only ever touches amount.
    """

    amount: Optional[Decimal] = None
    date: Optional[datetime] = None
    description: Optional[str] = None
    type: Optional[TransactionType] = None

    def apply_to(self, existing: Transaction) -> Transaction:
        """Return a copy of existing with the supplied fields overwritten."""
        changes = {name: getattr(self, name) for name in self.model_fields_set}
        # an explicit null description clears it
        if "description" in changes and changes["description"] is None:
            changes["description"] = ""
        return existing.model_copy(update=changes)


# =============================================================================
# LIST ENVELOPE
# =============================================================================

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """
    Paginated list response.

    data is always a list, never null, even when empty.
    Dump with by_alias=True to get the pageSize key.
    """

    model_config = ConfigDict(populate_by_name=True)

    data: list[T] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1, alias="pageSize")
