"""
Tests for Expense Ledger models.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from expense_ledger.models.ledger import (
    Account,
    AccountType,
    Page,
    Transaction,
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


def make_transaction(**overrides) -> Transaction:
    fields = dict(
        id="tx-1",
        account_id="acc-1",
        amount=Decimal("10.00"),
        date=datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
        description="Coffee",
        type=TransactionType.EXPENSE,
    )
    fields.update(overrides)
    return Transaction(**fields)


class TestEnums:
    """Tests for the enumerated types."""

    def test_account_types(self):
        """Exactly bank, cash and other are allowed."""
        assert [t.value for t in AccountType] == ["bank", "cash", "other"]
        with pytest.raises(ValueError):
            AccountType("credit")

    def test_transaction_types(self):
        assert [t.value for t in TransactionType] == ["income", "expense"]

    def test_allowed_values(self):
        assert allowed_values(AccountType) == "bank, cash, other"
        assert allowed_values(TransactionType) == "income, expense"


class TestTimestamps:
    """Tests for RFC 3339 parsing and formatting."""

    def test_parse_utc(self):
        parsed = parse_timestamp("2024-01-15T10:30:00Z")
        assert parsed == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_parse_offset(self):
        parsed = parse_timestamp("2024-01-15T10:30:00+02:00")
        assert parsed.utcoffset() == timedelta(hours=2)
        assert parsed == datetime(2024, 1, 15, 8, 30, tzinfo=timezone.utc)

    def test_parse_fractional_seconds(self):
        """Short fractions are padded, long ones truncated to microseconds."""
        assert parse_timestamp("2024-01-15T10:30:00.5Z").microsecond == 500000
        assert parse_timestamp("2024-01-15T10:30:00.123456789Z").microsecond == 123456

    def test_parse_lowercase_separators(self):
        parsed = parse_timestamp("2024-01-15t10:30:00z")
        assert parsed.tzinfo is not None

    @pytest.mark.parametrize("text", [
        "2024-01-15",
        "2024-01-15T10:30:00",
        "15/01/2024",
        "2024-13-01T00:00:00Z",
        "2024-01-15 10:30:00Z",
        "2024-01-15T10:30:00Z\n",
        "",
        "not a date",
    ])
    def test_parse_rejects(self, text):
        """Date-only, offset-less and out-of-range values are rejected."""
        with pytest.raises(ValueError):
            parse_timestamp(text)

    def test_format_uses_z_for_utc(self):
        value = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert format_timestamp(value) == "2024-01-15T10:30:00Z"

    def test_format_keeps_offset(self):
        value = parse_timestamp("2024-01-15T10:30:00-05:00")
        assert format_timestamp(value) == "2024-01-15T10:30:00-05:00"

    def test_format_naive_is_treated_as_utc(self):
        assert format_timestamp(datetime(2024, 1, 15)) == "2024-01-15T00:00:00Z"


class TestAccount:
    """Tests for the Account model."""

    def test_account_creation(self):
        account = Account(name="Wallet", type=AccountType.CASH)
        assert account.id == ""
        assert account.type == AccountType.CASH

    def test_account_rejects_empty_name(self):
        with pytest.raises(ValueError):
            Account(name="", type=AccountType.BANK)

    def test_account_json_shape(self):
        account = Account(id="a1", name="Wallet", type="cash")
        assert account.model_dump(mode="json") == {
            "id": "a1",
            "name": "Wallet",
            "type": "cash",
        }


class TestTransaction:
    """Tests for the Transaction model."""

    def test_defaults(self):
        tx = Transaction(
            account_id="acc-1",
            date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            type=TransactionType.INCOME,
        )
        assert tx.amount == Decimal("0")
        assert tx.description == ""

    def test_negative_amount_allowed(self):
        """Sign carries no meaning; an income may be negative."""
        tx = make_transaction(amount=Decimal("-12.34"), type=TransactionType.INCOME)
        assert tx.amount == Decimal("-12.34")

    def test_requires_account_id(self):
        with pytest.raises(ValueError):
            make_transaction(account_id="")

    def test_json_shape(self):
        tx = make_transaction()
        assert tx.model_dump(mode="json") == {
            "id": "tx-1",
            "account_id": "acc-1",
            "amount": 10.0,
            "date": "2024-01-15T10:30:00Z",
            "description": "Coffee",
            "type": "expense",
        }


class TestTransactionPatch:
    """Tests for presence-based partial updates."""

    def test_only_supplied_fields_change(self):
        existing = make_transaction()
        patch = TransactionPatch(amount=Decimal("75.25"))

        merged = patch.apply_to(existing)

        assert merged.amount == Decimal("75.25")
        assert merged.date == existing.date
        assert merged.description == existing.description
        assert merged.type == existing.type
        assert merged.id == existing.id
        assert merged.account_id == existing.account_id

    def test_empty_patch_changes_nothing(self):
        existing = make_transaction()
        assert TransactionPatch().apply_to(existing) == existing

    def test_falsy_values_still_overwrite(self):
        """Presence, not truthiness, decides: 0 and "" are applied."""
        existing = make_transaction()
        merged = TransactionPatch(amount=Decimal("0"), description="").apply_to(existing)
        assert merged.amount == Decimal("0")
        assert merged.description == ""

    def test_explicit_null_description_clears(self):
        existing = make_transaction()
        merged = TransactionPatch(description=None).apply_to(existing)
        assert merged.description == ""

    def test_does_not_mutate_existing(self):
        existing = make_transaction()
        TransactionPatch(type=TransactionType.INCOME).apply_to(existing)
        assert existing.type == TransactionType.EXPENSE


class TestPage:
    """Tests for the list envelope."""

    def test_empty_page_has_list(self):
        page = Page[Account](total=0, page=1, page_size=20)
        assert page.model_dump(mode="json", by_alias=True) == {
            "data": [],
            "total": 0,
            "page": 1,
            "pageSize": 20,
        }

    def test_accepts_alias(self):
        page = Page[Account](data=[], total=0, page=1, pageSize=5)
        assert page.page_size == 5

    def test_rejects_page_zero(self):
        with pytest.raises(ValueError):
            Page[Account](total=0, page=0, page_size=20)


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            description="Account created",
        )
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        correlation_id = uuid4()
        event = AuditEventBuilder.transaction_created(
            transaction_id="tx-1",
            account_id="acc-1",
            amount="42.50",
            transaction_type="expense",
            correlation_id=correlation_id,
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "transaction_created"
        assert log_dict["entity_id"] == "tx-1"
        assert log_dict["correlation_id"] == str(correlation_id)
        assert log_dict["details"]["account_id"] == "acc-1"

    def test_account_deleted_is_warning(self):
        event = AuditEventBuilder.account_deleted(account_id="acc-1")
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_type == "account"

    def test_transaction_updated_lists_fields(self):
        event = AuditEventBuilder.transaction_updated(
            transaction_id="tx-1",
            account_id="acc-1",
            fields=["type", "amount"],
        )
        assert event.details["fields"] == ["amount", "type"]

    def test_storage_error_keeps_message(self):
        event = AuditEventBuilder.storage_error(
            operation="list_accounts",
            error_message="connection refused",
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "connection refused"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
