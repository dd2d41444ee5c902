"""
Request Payload Validation

Turns a raw request body into one of the typed payload models, or raises
PayloadError naming the first rule the body breaks.

Checks run in a fixed order so clients always see the same message for
the same body:
1. The body is a JSON object
2. Required fields are present and non-empty
3. Enumerated fields hold an allowed value
4. Typed fields (amount, date) parse

Validation never touches storage and never fixes input silently.
"""

import json
import math
from decimal import Decimal
from typing import Any

from expense_ledger.models.ledger import (
    AccountPayload,
    AccountType,
    TransactionDraft,
    TransactionPatch,
    TransactionType,
    allowed_values,
    parse_timestamp,
)


INVALID_JSON = "invalid JSON"
INVALID_DATE = "invalid date (use RFC3339)"
ACCOUNT_TYPE_MESSAGE = f"type must be one of: {allowed_values(AccountType)}"
TRANSACTION_TYPE_MESSAGE = f"type must be one of: {allowed_values(TransactionType)}"

_MISSING = object()


class PayloadError(ValueError):
    """The request body breaks a validation rule."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _reject_constant(name: str) -> Any:
    # json accepts NaN / Infinity by default; JSON proper does not
    raise ValueError(f"unsupported constant: {name}")


def decode_json_object(raw: bytes) -> dict[str, Any]:
    """
    Decode a request body that must be a single JSON object.

    Numbers with a fraction are decoded as Decimal so amounts keep
    their exact value.
    """
    try:
        body = json.loads(
            raw.decode("utf-8"),
            parse_float=Decimal,
            parse_constant=_reject_constant,
        )
    except (UnicodeDecodeError, ValueError):
        raise PayloadError(INVALID_JSON)

    if not isinstance(body, dict):
        raise PayloadError(INVALID_JSON)
    return body


def _require_text(body: dict[str, Any], field: str) -> str:
    value = body.get(field)
    if value is None or value == "":
        raise PayloadError(f"{field} is required")
    if not isinstance(value, str):
        raise PayloadError(f"{field} must be a string")
    return value


def _account_type(value: Any) -> AccountType:
    try:
        return AccountType(value)
    except ValueError:
        raise PayloadError(ACCOUNT_TYPE_MESSAGE)


def _transaction_type(value: Any) -> TransactionType:
    try:
        return TransactionType(value)
    except ValueError:
        raise PayloadError(TRANSACTION_TYPE_MESSAGE)


def _amount(value: Any) -> Decimal:
    # bool is an int subclass; true is not an amount
    if isinstance(value, bool) or not isinstance(value, (int, Decimal)):
        raise PayloadError("amount must be a number")
    amount = Decimal(value)
    # 1e400 decodes fine but has no JSON float form
    if not math.isfinite(float(amount)):
        raise PayloadError("amount must be a number")
    return amount


def _timestamp(value: Any):
    if not isinstance(value, str):
        raise PayloadError(INVALID_DATE)
    try:
        return parse_timestamp(value)
    except ValueError:
        raise PayloadError(INVALID_DATE)


def _description(value: Any) -> str:
    if not isinstance(value, str):
        raise PayloadError("description must be a string")
    return value


def validate_account_payload(body: dict[str, Any]) -> AccountPayload:
    """
    Validate an account create/update body.

    Both name and type are required; type must be bank, cash or other.
    """
    name = _require_text(body, "name")
    raw_type = _require_text(body, "type")
    return AccountPayload(name=name, type=_account_type(raw_type))


def validate_transaction_create(body: dict[str, Any]) -> TransactionDraft:
    """
    Validate a transaction create body.

    type and date are required. amount defaults to 0 and description
    to the empty string.
    """
    raw_type = body.get("type")
    if raw_type is None or raw_type == "":
        raise PayloadError("type is required")
    tx_type = _transaction_type(raw_type)

    raw_date = body.get("date")
    if raw_date is None or raw_date == "":
        raise PayloadError("date is required")
    date = _timestamp(raw_date)

    raw_amount = body.get("amount")
    amount = Decimal("0") if raw_amount is None else _amount(raw_amount)

    raw_description = body.get("description")
    description = "" if raw_description is None else _description(raw_description)

    return TransactionDraft(
        amount=amount,
        date=date,
        description=description,
        type=tx_type,
    )


def validate_transaction_patch(body: dict[str, Any]) -> TransactionPatch:
    """
    Validate a partial transaction update body.

    Only keys present in the body end up in the patch's model_fields_set.
    A present key is validated as strictly as on create; an explicit null
    is only accepted for description (clearing it).
    """
    fields: dict[str, Any] = {}

    raw_amount = body.get("amount", _MISSING)
    if raw_amount is not _MISSING:
        if raw_amount is None:
            raise PayloadError("amount cannot be null")
        fields["amount"] = _amount(raw_amount)

    raw_date = body.get("date", _MISSING)
    if raw_date is not _MISSING:
        if raw_date is None:
            raise PayloadError("date cannot be null")
        fields["date"] = _timestamp(raw_date)

    raw_description = body.get("description", _MISSING)
    if raw_description is not _MISSING:
        fields["description"] = (
            None if raw_description is None else _description(raw_description)
        )

    raw_type = body.get("type", _MISSING)
    if raw_type is not _MISSING:
        if raw_type is None:
            raise PayloadError("type cannot be null")
        fields["type"] = _transaction_type(raw_type)

    return TransactionPatch(**fields)
