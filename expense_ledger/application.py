"""
Application Factory for Expense Ledger

Ties together configuration, storage, handlers and the route table into
one WSGI application:

    request -> LedgerApp -> Router -> handler -> storage
                  |
                  +-> HTTP errors rendered as {"error": ...}

Storage is chosen at startup: PostgreSQL when DATABASE_URL is set, the
in-memory store otherwise. The one shared connection pool is created here
and passed explicitly to the storages that use it.
"""

from typing import Optional

import structlog
from werkzeug.exceptions import HTTPException, InternalServerError
from werkzeug.wrappers import Request, Response

from expense_ledger.api import (
    AccountHandler,
    TransactionHandler,
    correlation_id,
    error_response,
)
from expense_ledger.api.router import Route, Router, route
from expense_ledger.audit import AuditLogger, configure_logging
from expense_ledger.config import Settings, get_settings
from expense_ledger.services.storage import (
    AccountStorageInterface,
    InMemoryAccountStorage,
    InMemoryDatabase,
    InMemoryTransactionStorage,
    PostgresAccountStorage,
    PostgresClient,
    PostgresTransactionStorage,
    TransactionStorageInterface,
)


logger = structlog.get_logger(__name__)


def health(request: Request) -> Response:
    """Liveness check."""
    return Response("OK", status=200, mimetype="text/plain")


def build_routes(
    accounts: AccountHandler,
    transactions: TransactionHandler,
) -> list[Route]:
    """
    The route table. Order matters: the first route matching both path and
    method wins, so nested transaction routes come before shorter ones.
    """
    return [
        route("GET", "/", health),
        route("GET", "/accounts", accounts.list_accounts),
        route("POST", "/accounts", accounts.create_account),
        route("DELETE", "/accounts", accounts.delete_account),
        route("PUT", "/accounts/{id}", accounts.update_account),
        route("DELETE", "/accounts/{id}", accounts.delete_account),
        route("GET", "/accounts/{id}/transactions/{txId}", transactions.list_transactions),
        route("PUT", "/accounts/{id}/transactions/{txId}", transactions.update_transaction),
        route("DELETE", "/accounts/{id}/transactions/{txId}", transactions.delete_transaction),
        route("GET", "/accounts/{id}/transactions", transactions.list_transactions),
        route("POST", "/accounts/{id}/transactions", transactions.create_transaction),
    ]


class LedgerApp:
    """
    The WSGI application.

    Stateless apart from the router and the audit logger, both shared
    read-only across request threads.
    """

    def __init__(
        self,
        router: Router,
        audit_logger: Optional[AuditLogger] = None,
        postgres_client: Optional[PostgresClient] = None,
    ):
        self.router = router
        self._audit = audit_logger or AuditLogger()
        self._postgres_client = postgres_client

    def dispatch(self, request: Request) -> Response:
        """Route a request and turn any exception into an HTTP response."""
        try:
            return self.router.dispatch(request)
        except HTTPException as e:
            return error_response(e)
        except Exception as e:
            logger.exception(
                "unhandled_error",
                method=request.method,
                path=request.path,
                correlation_id=str(correlation_id(request)),
            )
            self._audit.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"method": request.method, "path": request.path},
                correlation_id=correlation_id(request),
            )
            return error_response(InternalServerError(description="internal server error"))

    def wsgi_app(self, environ, start_response):
        request = Request(environ)
        cid = correlation_id(request)
        response = self.dispatch(request)
        response.headers["X-Correlation-ID"] = str(cid)
        logger.info(
            "request_completed",
            method=request.method,
            path=request.path,
            status=response.status_code,
            correlation_id=str(cid),
        )
        return response(environ, start_response)

    def __call__(self, environ, start_response):
        return self.wsgi_app(environ, start_response)

    def close(self) -> None:
        """Release the connection pool, if this app owns one."""
        if self._postgres_client is not None:
            self._postgres_client.close()


def create_app(
    settings: Optional[Settings] = None,
    account_storage: Optional[AccountStorageInterface] = None,
    transaction_storage: Optional[TransactionStorageInterface] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> LedgerApp:
    """
    Factory function to create the application.

    Args:
        settings: Settings to use; defaults to get_settings()
        account_storage: Storage override (tests); must be given together
                         with transaction_storage
        transaction_storage: Storage override (tests)
        audit_logger: Audit logger override

    Returns:
        A ready-to-serve LedgerApp
    """
    settings = settings or get_settings()
    server = settings.server
    audit_logger = audit_logger or AuditLogger()
    postgres_client = None

    if (account_storage is None) != (transaction_storage is None):
        raise ValueError("account_storage and transaction_storage go together")

    if account_storage is None:
        database = settings.database
        if database.is_configured:
            postgres_client = PostgresClient(database)
            postgres_client.connect()
            account_storage = PostgresAccountStorage(postgres_client)
            transaction_storage = PostgresTransactionStorage(postgres_client)
            logger.info("storage_selected", backend="postgresql")
        else:
            memory = InMemoryDatabase()
            account_storage = InMemoryAccountStorage(memory)
            transaction_storage = InMemoryTransactionStorage(memory)
            logger.warning(
                "storage_selected",
                backend="memory",
                reason="DATABASE_URL is not set; data is lost on restart",
            )

    accounts = AccountHandler(account_storage, audit_logger, server.max_body_bytes)
    transactions = TransactionHandler(transaction_storage, audit_logger, server.max_body_bytes)
    router = Router(build_routes(accounts, transactions))

    return LedgerApp(router, audit_logger, postgres_client)


def serve() -> None:
    """Run the development server (threaded, one thread per request)."""
    from werkzeug.serving import run_simple

    settings = get_settings()
    server = settings.server
    configure_logging(server.log_level)

    app = create_app(settings)
    logger.info("server_starting", host=server.host, port=server.port)
    try:
        run_simple(
            server.host,
            server.port,
            app,
            threaded=True,
            use_reloader=server.debug_mode,
        )
    finally:
        app.close()
