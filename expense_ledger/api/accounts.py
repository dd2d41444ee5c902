"""
Account resource handler.

    GET    /accounts              paginated list
    POST   /accounts              create
    PUT    /accounts/{id}         replace name and type
    DELETE /accounts/{id}         delete (cascades to transactions)
    DELETE /accounts?id=<id>      legacy form of the above
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
from expense_ledger.models.ledger import Account, AccountPayload, Page
from expense_ledger.services.storage import (
    AccountStorageInterface,
    NotFoundError,
    StorageError,
)
from expense_ledger.validation import PayloadError, validate_account_payload


ACCOUNT_PATH = RoutePattern("/accounts/{id}")


def account_id_from_path(path: str) -> str:
    """The id in /accounts/<id>, or "" if the path has another shape."""
    params = ACCOUNT_PATH.match(path)
    return params["id"] if params else ""


class AccountHandler:
    """Validates account requests and forwards them to storage."""

    def __init__(
        self,
        storage: AccountStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        max_body_bytes: int = MAX_BODY_BYTES,
    ):
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._max_body_bytes = max_body_bytes

    def _payload(self, request: Request) -> AccountPayload:
        body = read_json_body(request, self._max_body_bytes)
        try:
            return validate_account_payload(body)
        except PayloadError as e:
            raise BadRequest(description=e.message)

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

    def list_accounts(self, request: Request) -> Response:
        require_method(request, "GET")
        page, page_size = parse_pagination(request.args)

        try:
            accounts, total = self._storage.list_accounts(page, page_size)
        except StorageError as e:
            raise self._storage_failure(request, "list_accounts", e, "failed to list accounts")

        return json_response(Page[Account](
            data=accounts or [],
            total=total,
            page=page,
            page_size=page_size,
        ))

    def create_account(self, request: Request) -> Response:
        require_method(request, "POST")
        payload = self._payload(request)

        try:
            account = self._storage.create_account(payload.to_account())
        except StorageError as e:
            raise self._storage_failure(request, "create_account", e, "failed to create account")

        self._audit.log_account_created(
            account.id, account.name, account.type.value, correlation_id(request)
        )
        return json_response(account, status=201)

    def update_account(self, request: Request) -> Response:
        require_method(request, "PUT")
        account_id = account_id_from_path(request.path)
        if not account_id:
            raise BadRequest(description="invalid account ID in path")
        payload = self._payload(request)

        account = payload.to_account(account_id)
        try:
            self._storage.update_account(account)
        except NotFoundError:
            raise NotFound(description="account not found")
        except StorageError as e:
            raise self._storage_failure(request, "update_account", e, "failed to update account")

        self._audit.log_account_updated(
            account.id, account.name, account.type.value, correlation_id(request)
        )
        return json_response(account)

    def delete_account(self, request: Request) -> Response:
        require_method(request, "DELETE")
        # ?id= is still accepted from older clients
        account_id = account_id_from_path(request.path) or request.args.get("id", "")
        if not account_id:
            raise BadRequest(description="ID is required (path or query)")

        try:
            self._storage.delete_account(account_id)
        except NotFoundError:
            raise NotFound(description="account not found")
        except StorageError as e:
            raise self._storage_failure(request, "delete_account", e, "failed to delete account")

        self._audit.log_account_deleted(account_id, correlation_id(request))
        return json_response({"message": "account deleted"})
