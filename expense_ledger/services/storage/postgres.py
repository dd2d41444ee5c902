"""
PostgreSQL Storage Implementation

Accounts and transactions live in two tables (see schema.sql):

    accounts(id UUID PK, name TEXT, type TEXT)
    transactions(id UUID PK, account_id UUID FK ON DELETE CASCADE,
                 amount NUMERIC(18,4), date TIMESTAMPTZ,
                 description TEXT, type TEXT)

All SQL is parameterized. One ThreadedConnectionPool is shared by both
storages and by every request thread; each operation borrows a connection
for the duration of one database transaction and hands it back.

Ids are opaque to clients but UUIDs in the database. An id that is not a
valid UUID cannot name a row, so it is treated as absent instead of being
sent to the server (where it would fail the ::uuid cast).
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional
from uuid import UUID, uuid4

import psycopg2
import psycopg2.errors
from psycopg2.pool import ThreadedConnectionPool
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_ledger.config import DatabaseSettings, get_settings
from expense_ledger.models.ledger import (
    Account,
    AccountType,
    Transaction,
    TransactionType,
)
from expense_ledger.services.storage.interface import (
    AccountStorageInterface,
    ConnectionError,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)


ACCOUNT_COLUMNS = "id::text, name, type"
TRANSACTION_COLUMNS = "id::text, account_id::text, amount, date, description, type"


def _is_uuid(value: str) -> bool:
    try:
        UUID(value)
    except (TypeError, ValueError):
        return False
    return True


class PostgresClient:
    """
    Owner of the shared connection pool.

    Handles pool creation with retry, and lends out connections.
    """

    def __init__(
        self,
        settings: Optional[DatabaseSettings] = None,
        pool: Optional[ThreadedConnectionPool] = None,
    ):
        self._settings = settings or get_settings().database
        self._pool = pool
        self._lock = threading.Lock()

    def connect(self) -> ThreadedConnectionPool:
        """
        Open the pool if it is not open yet.

        Retries transient connection failures with exponential backoff.
        """
        with self._lock:
            if self._pool is not None:
                return self._pool

            if not self._settings.url:
                raise ConnectionError("DATABASE_URL is not configured")

            try:
                for attempt in Retrying(
                    stop=stop_after_attempt(self._settings.connect_attempts),
                    wait=wait_exponential(multiplier=1, min=1, max=10),
                    retry=retry_if_exception_type(psycopg2.OperationalError),
                    reraise=True,
                ):
                    with attempt:
                        self._pool = ThreadedConnectionPool(
                            self._settings.pool_min_size,
                            self._settings.pool_max_size,
                            dsn=self._settings.url,
                        )
            except psycopg2.Error as e:
                raise ConnectionError(f"Failed to connect to PostgreSQL: {e}")

            return self._pool

    @contextmanager
    def connection(self) -> Iterator["psycopg2.extensions.connection"]:
        """
        Borrow a pooled connection for one database transaction.

        Commits when the block exits normally, rolls back otherwise.
        """
        pool = self.connect()
        try:
            conn = pool.getconn()
        except psycopg2.pool.PoolError as e:
            raise ConnectionError(f"No connection available: {e}")

        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    def close(self) -> None:
        with self._lock:
            if self._pool is not None:
                self._pool.closeall()
                self._pool = None


class PostgresAccountStorage(AccountStorageInterface):
    """PostgreSQL implementation of account storage."""

    def __init__(self, client: PostgresClient):
        self._client = client

    @staticmethod
    def _row_to_account(row: tuple) -> Account:
        return Account(id=row[0], name=row[1], type=AccountType(row[2]))

    def list_accounts(
        self,
        page: int,
        page_size: int,
    ) -> tuple[list[Account], int]:
        try:
            with self._client.connection() as conn, conn.cursor() as cur:
                cur.execute("SELECT COUNT(*) FROM accounts")
                total = cur.fetchone()[0]
                cur.execute(
                    f"SELECT {ACCOUNT_COLUMNS} FROM accounts "
                    "ORDER BY name, id LIMIT %s OFFSET %s",
                    (page_size, (page - 1) * page_size),
                )
                rows = cur.fetchall()
            return [self._row_to_account(row) for row in rows], total
        except (psycopg2.Error, ValueError) as e:
            raise StorageError(f"Failed to list accounts: {e}")

    def create_account(self, account: Account) -> Account:
        saved = account.model_copy(update={"id": str(uuid4())})
        try:
            with self._client.connection() as conn, conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO accounts (id, name, type) VALUES (%s::uuid, %s, %s)",
                    (saved.id, saved.name, saved.type.value),
                )
            return saved
        except psycopg2.Error as e:
            raise StorageError(f"Failed to create account: {e}")

    def update_account(self, account: Account) -> None:
        if not _is_uuid(account.id):
            raise NotFoundError(f"Account not found: {account.id}")
        try:
            with self._client.connection() as conn, conn.cursor() as cur:
                cur.execute(
                    "UPDATE accounts SET name = %s, type = %s WHERE id = %s::uuid",
                    (account.name, account.type.value, account.id),
                )
                updated = cur.rowcount
        except psycopg2.Error as e:
            raise StorageError(f"Failed to update account: {e}")
        if updated == 0:
            raise NotFoundError(f"Account not found: {account.id}")

    def delete_account(self, account_id: str) -> None:
        if not _is_uuid(account_id):
            raise NotFoundError(f"Account not found: {account_id}")
        try:
            with self._client.connection() as conn, conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM accounts WHERE id = %s::uuid",
                    (account_id,),
                )
                deleted = cur.rowcount
        except psycopg2.Error as e:
            raise StorageError(f"Failed to delete account: {e}")
        if deleted == 0:
            raise NotFoundError(f"Account not found: {account_id}")


class PostgresTransactionStorage(TransactionStorageInterface):
    """PostgreSQL implementation of transaction storage."""

    def __init__(self, client: PostgresClient):
        self._client = client

    @staticmethod
    def _row_to_transaction(row: tuple) -> Transaction:
        return Transaction(
            id=row[0],
            account_id=row[1],
            amount=row[2],
            date=row[3],
            description=row[4] or "",
            type=TransactionType(row[5]),
        )

    def list_transactions(
        self,
        account_id: str,
        page: int,
        page_size: int,
    ) -> tuple[list[Transaction], int]:
        if not _is_uuid(account_id):
            return [], 0
        try:
            with self._client.connection() as conn, conn.cursor() as cur:
                cur.execute(
                    "SELECT COUNT(*) FROM transactions WHERE account_id = %s::uuid",
                    (account_id,),
                )
                total = cur.fetchone()[0]
                cur.execute(
                    f"SELECT {TRANSACTION_COLUMNS} FROM transactions "
                    "WHERE account_id = %s::uuid "
                    "ORDER BY date DESC, id LIMIT %s OFFSET %s",
                    (account_id, page_size, (page - 1) * page_size),
                )
                rows = cur.fetchall()
            return [self._row_to_transaction(row) for row in rows], total
        except (psycopg2.Error, ValueError) as e:
            raise StorageError(f"Failed to list transactions: {e}")

    def get_transaction(
        self,
        account_id: str,
        transaction_id: str,
    ) -> Optional[Transaction]:
        if not (_is_uuid(account_id) and _is_uuid(transaction_id)):
            return None
        try:
            with self._client.connection() as conn, conn.cursor() as cur:
                cur.execute(
                    f"SELECT {TRANSACTION_COLUMNS} FROM transactions "
                    "WHERE account_id = %s::uuid AND id = %s::uuid",
                    (account_id, transaction_id),
                )
                row = cur.fetchone()
            return self._row_to_transaction(row) if row else None
        except (psycopg2.Error, ValueError) as e:
            raise StorageError(f"Failed to get transaction: {e}")

    def create_transaction(self, transaction: Transaction) -> Transaction:
        if not _is_uuid(transaction.account_id):
            raise NotFoundError(f"Account not found: {transaction.account_id}")
        saved = transaction.model_copy(update={"id": str(uuid4())})
        try:
            with self._client.connection() as conn, conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO transactions "
                    "(id, account_id, amount, date, description, type) "
                    "VALUES (%s::uuid, %s::uuid, %s, %s, %s, %s)",
                    (
                        saved.id,
                        saved.account_id,
                        saved.amount,
                        saved.date,
                        saved.description,
                        saved.type.value,
                    ),
                )
            return saved
        except psycopg2.errors.ForeignKeyViolation:
            raise NotFoundError(f"Account not found: {transaction.account_id}")
        except psycopg2.Error as e:
            raise StorageError(f"Failed to create transaction: {e}")

    def update_transaction(self, transaction: Transaction) -> None:
        if not (_is_uuid(transaction.account_id) and _is_uuid(transaction.id)):
            raise NotFoundError(f"Transaction not found: {transaction.id}")
        try:
            with self._client.connection() as conn, conn.cursor() as cur:
                cur.execute(
                    "UPDATE transactions "
                    "SET amount = %s, date = %s, description = %s, type = %s "
                    "WHERE account_id = %s::uuid AND id = %s::uuid",
                    (
                        transaction.amount,
                        transaction.date,
                        transaction.description,
                        transaction.type.value,
                        transaction.account_id,
                        transaction.id,
                    ),
                )
                updated = cur.rowcount
        except psycopg2.Error as e:
            raise StorageError(f"Failed to update transaction: {e}")
        if updated == 0:
            raise NotFoundError(f"Transaction not found: {transaction.id}")

    def delete_transaction(
        self,
        account_id: str,
        transaction_id: str,
    ) -> None:
        if not (_is_uuid(account_id) and _is_uuid(transaction_id)):
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        try:
            with self._client.connection() as conn, conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM transactions "
                    "WHERE account_id = %s::uuid AND id = %s::uuid",
                    (account_id, transaction_id),
                )
                deleted = cur.rowcount
        except psycopg2.Error as e:
            raise StorageError(f"Failed to delete transaction: {e}")
        if deleted == 0:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
