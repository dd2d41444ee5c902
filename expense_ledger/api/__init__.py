"""HTTP layer: routing, resource handlers and response helpers."""

from expense_ledger.api.accounts import AccountHandler, account_id_from_path
from expense_ledger.api.helpers import (
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    MAX_BODY_BYTES,
    MAX_PAGE_SIZE,
    correlation_id,
    error_response,
    json_response,
    parse_pagination,
    read_json_body,
)
from expense_ledger.api.router import Route, RoutePattern, Router, route
from expense_ledger.api.transactions import TransactionHandler, transaction_path_ids

__all__ = [
    "AccountHandler",
    "DEFAULT_PAGE",
    "DEFAULT_PAGE_SIZE",
    "MAX_BODY_BYTES",
    "MAX_PAGE_SIZE",
    "Route",
    "RoutePattern",
    "Router",
    "TransactionHandler",
    "account_id_from_path",
    "correlation_id",
    "error_response",
    "json_response",
    "parse_pagination",
    "read_json_body",
    "route",
    "transaction_path_ids",
]
