"""
Transaction resource handler.

Every route is nested under the owning account:

    GET    /accounts/{id}/transactions          paginated list, newest first
    GET    /accounts/{id}/transactions/{txId}   get one
    POST   /accounts/{id}/transactions          create
    PUT    /accounts/{id}/transactions/{txId}   partial update
    DELETE /accounts/{id}/transactions/{txId}   delete

Bodies are validated completely before storage is called. A partial update
fetches the stored transaction, overwrites only the supplied fields and
writes the merged result back; a rejected body leaves storage untouched.
Concurrent updates of one transaction are last-write-wins.
"""

from typing import Optional

from werkzeug.exceptions import BadRequest, InternalServerError, NotFound
from werkzeug.wrappers import Request, Response

from expense_ledger.api.helpers import (
    MAX_BODY_BYTES,
    correlation_id,
    json_response,
    parse_pagination,
    read_json_body,
    require_method,
)
from expense_ledger.api.router import RoutePattern
from expense_ledger.audit import AuditLogger
from expense_ledger.models.ledger import Page, Transaction
from expense_ledger.services.storage import (
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from expense_ledger.validation import (
    PayloadError,
    validate_transaction_create,
    validate_transaction_patch,
)


TRANSACTIONS_PATH = RoutePattern("/accounts/{accountId}/transactions")
TRANSACTION_PATH = RoutePattern("/accounts/{accountId}/transactions/{txId}")


def transaction_path_ids(path: str) -> Optional[tuple[str, Optional[str]]]:
    """
    Extract (account_id, transaction_id) from a transactions path.

    /accounts/a/transactions      -> ("a", None)
    /accounts/a/transactions/t    -> ("a", "t")
    anything else (including a trailing slash) -> None
    """
    params = TRANSACTION_PATH.match(path)
    if params is not None:
        return params["accountId"], params["txId"]
    params = TRANSACTIONS_PATH.match(path)
    if params is not None:
        return params["accountId"], None
    return None


class TransactionHandler:
    """Validates transaction requests and forwards them to storage."""

    def __init__(
        self,
        storage: TransactionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        max_body_bytes: int = MAX_BODY_BYTES,
    ):
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._max_body_bytes = max_body_bytes

    def _storage_failure(
        self,
        request: Request,
        operation: str,
        error: Exception,
        message: str,
    ) -> InternalServerError:
        """Audit a storage error and build the generic 500 for the client."""
        self._audit.log_storage_error(operation, str(error), correlation_id(request))
        return InternalServerError(description=message)

    def _ids(self, request: Request, needs_tx: Optional[bool], message: str) -> tuple[str, Optional[str]]:
        """
        Parse the path, enforcing whether a transaction id must be present
        (True), absent (False) or either (None).
        """
        ids = transaction_path_ids(request.path)
        if ids is None:
            raise BadRequest(description=message)
        tx_id = ids[1]
        if needs_tx is True and tx_id is None:
            raise BadRequest(description=message)
        if needs_tx is False and tx_id is not None:
            raise BadRequest(description=message)
        return ids

    def _fetch(self, request: Request, account_id: str, tx_id: str) -> Transaction:
        try:
            tx = self._storage.get_transaction(account_id, tx_id)
        except StorageError as e:
            raise self._storage_failure(request, "get_transaction", e, "failed to get transaction")
        if tx is None:
            raise NotFound(description="transaction not found")
        return tx

    def list_transactions(self, request: Request) -> Response:
        """List an account's transactions, or fetch one when the path names it."""
        require_method(request, "GET")
        account_id, tx_id = self._ids(request, None, "invalid account ID in path")

        if tx_id is not None:
            return json_response(self._fetch(request, account_id, tx_id))

        page, page_size = parse_pagination(request.args)
        try:
            items, total = self._storage.list_transactions(account_id, page, page_size)
        except StorageError as e:
            raise self._storage_failure(request, "list_transactions", e, "failed to list transactions")

        return json_response(Page[Transaction](
            data=items or [],
            total=total,
            page=page,
            page_size=page_size,
        ))

    def create_transaction(self, request: Request) -> Response:
        require_method(request, "POST")
        account_id, _ = self._ids(request, False, "invalid path for create transaction")

        body = read_json_body(request, self._max_body_bytes)
        try:
            draft = validate_transaction_create(body)
        except PayloadError as e:
            raise BadRequest(description=e.message)

        try:
            tx = self._storage.create_transaction(draft.to_transaction(account_id))
        except NotFoundError:
            raise NotFound(description="account not found")
        except StorageError as e:
            raise self._storage_failure(request, "create_transaction", e, "failed to create transaction")

        self._audit.log_transaction_created(
            tx.id, tx.account_id, str(tx.amount), tx.type.value, correlation_id(request)
        )
        return json_response(tx, status=201)

    def update_transaction(self, request: Request) -> Response:
        """Apply a partial update: only fields present in the body change."""
        require_method(request, "PUT")
        account_id, tx_id = self._ids(request, True, "invalid path for update transaction")

        body = read_json_body(request, self._max_body_bytes)
        try:
            patch = validate_transaction_patch(body)
        except PayloadError as e:
            raise BadRequest(description=e.message)

        merged = patch.apply_to(self._fetch(request, account_id, tx_id))
        try:
            self._storage.update_transaction(merged)
        except NotFoundError:
            # deleted between fetch and write
            raise NotFound(description="transaction not found")
        except StorageError as e:
            raise self._storage_failure(request, "update_transaction", e, "failed to update transaction")

        self._audit.log_transaction_updated(
            merged.id, merged.account_id, list(patch.model_fields_set), correlation_id(request)
        )
        return json_response(merged)

    def delete_transaction(self, request: Request) -> Response:
        require_method(request, "DELETE")
        account_id, tx_id = self._ids(request, True, "invalid path for delete transaction")

        try:
            self._storage.delete_transaction(account_id, tx_id)
        except NotFoundError:
            raise NotFound(description="transaction not found")
        except StorageError as e:
            raise self._storage_failure(request, "delete_transaction", e, "failed to delete transaction")

        self._audit.log_transaction_deleted(tx_id, account_id, correlation_id(request))
        return json_response({"message": "transaction deleted"})
