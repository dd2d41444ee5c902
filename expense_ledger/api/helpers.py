"""
Pagination, request body and JSON response helpers shared by all handlers.
"""

import json
import re
from typing import Any, Mapping, Optional
from uuid import UUID

from pydantic import BaseModel
from werkzeug.exceptions import (
    BadRequest,
    HTTPException,
    MethodNotAllowed,
    RequestEntityTooLarge,
)
from werkzeug.wrappers import Request, Response

from expense_ledger.audit import create_correlation_id
from expense_ledger.validation import PayloadError, decode_json_object


DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

MAX_BODY_BYTES = 1 << 20  # 1 MiB

JSON_MIMETYPE = "application/json"
CORRELATION_ENV_KEY = "expense_ledger.correlation_id"

_INTEGER = re.compile(r"^[+-]?\d+$")


# =============================================================================
# PAGINATION
# =============================================================================

def _positive_int(raw: Optional[str]) -> Optional[int]:
    """The value as an int if it is a whole number >= 1, else None."""
    if raw is None or not _INTEGER.match(raw):
        return None
    value = int(raw)
    return value if value >= 1 else None


def parse_pagination(args: Mapping[str, str]) -> tuple[int, int]:
    """
    Read page and pageSize from query arguments.

    Missing, non-numeric or < 1 values fall back to the defaults (1 and 20);
    a pageSize above 100 is clamped to 100. Never raises.
    """
    page = _positive_int(args.get("page")) or DEFAULT_PAGE
    page_size = _positive_int(args.get("pageSize")) or DEFAULT_PAGE_SIZE
    return page, min(page_size, MAX_PAGE_SIZE)


# =============================================================================
# REQUESTS
# =============================================================================

def require_method(request: Request, method: str) -> None:
    """Reject a request whose verb does not match the operation."""
    if request.method != method:
        raise MethodNotAllowed(
            valid_methods=[method],
            description="method not allowed",
        )


def read_json_body(request: Request, limit: int = MAX_BODY_BYTES) -> dict[str, Any]:
    """
    Read and decode a JSON object body of at most limit bytes.

    Raises:
        RequestEntityTooLarge: If the body exceeds limit
        BadRequest: If the body is not a JSON object
    """
    if request.content_length is not None and request.content_length > limit:
        raise RequestEntityTooLarge(description="request body too large")

    raw = request.stream.read(limit + 1)
    if len(raw) > limit:
        raise RequestEntityTooLarge(description="request body too large")

    try:
        return decode_json_object(raw)
    except PayloadError as e:
        raise BadRequest(description=e.message)


def correlation_id(request: Request) -> UUID:
    """The id shared by every audit event of this request."""
    cid = request.environ.get(CORRELATION_ENV_KEY)
    if cid is None:
        cid = request.environ[CORRELATION_ENV_KEY] = create_correlation_id()
    return cid


# =============================================================================
# RESPONSES
# =============================================================================

def to_jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    return data


def json_response(data: Any, status: int = 200) -> Response:
    """Serialize data as a JSON response with the given status."""
    return Response(
        json.dumps(to_jsonable(data)),
        status=status,
        mimetype=JSON_MIMETYPE,
    )


def error_response(error: HTTPException) -> Response:
    """
    Render an HTTP exception as {"error": "<description>"}.

    405 responses carry an Allow header listing the valid methods.
    """
    status = error.code or 500
    response = json_response({"error": error.description}, status=status)
    if isinstance(error, MethodNotAllowed) and error.valid_methods:
        response.headers["Allow"] = ", ".join(error.valid_methods)
    return response
