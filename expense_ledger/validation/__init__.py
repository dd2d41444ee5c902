"""Request validation package."""

from expense_ledger.validation.validator import (
    PayloadError,
    decode_json_object,
    validate_account_payload,
    validate_transaction_create,
    validate_transaction_patch,
)

__all__ = [
    "PayloadError",
    "decode_json_object",
    "validate_account_payload",
    "validate_transaction_create",
    "validate_transaction_patch",
]
