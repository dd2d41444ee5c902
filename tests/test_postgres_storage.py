"""
Tests for the PostgreSQL storage backend against a mocked psycopg2 pool.
"""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch
from uuid import uuid4

import psycopg2
import psycopg2.errors
import psycopg2.pool
import pytest

from expense_ledger.config import DatabaseSettings
from expense_ledger.models.ledger import (
    Account,
    AccountType,
    Transaction,
    TransactionType,
)
from expense_ledger.services.storage import (
    ConnectionError,
    NotFoundError,
    PostgresAccountStorage,
    PostgresClient,
    PostgresTransactionStorage,
    StorageError,
)


ACCOUNT_ID = str(uuid4())
TX_ID = str(uuid4())
WHEN = datetime(2024, 3, 1, 9, 15, tzinfo=timezone.utc)


def db_settings(**overrides) -> DatabaseSettings:
    fields = dict(url="postgresql://ledger@localhost/ledger", connect_attempts=1)
    fields.update(overrides)
    return DatabaseSettings(**fields)


@pytest.fixture
def cursor():
    return MagicMock()


@pytest.fixture
def conn(cursor):
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cursor
    return conn


@pytest.fixture
def pool(conn):
    pool = MagicMock()
    pool.getconn.return_value = conn
    return pool


@pytest.fixture
def pg_client(pool):
    return PostgresClient(db_settings(), pool=pool)


@pytest.fixture
def accounts(pg_client):
    return PostgresAccountStorage(pg_client)


@pytest.fixture
def transactions(pg_client):
    return PostgresTransactionStorage(pg_client)


def tx_row(**overrides):
    row = dict(
        id=TX_ID,
        account_id=ACCOUNT_ID,
        amount=Decimal("42.5000"),
        date=WHEN,
        description=None,
        type="expense",
    )
    row.update(overrides)
    return tuple(row.values())


class TestPostgresClient:
    """Tests for pool management."""

    def test_connect_without_url(self):
        client = PostgresClient(db_settings(url=None))
        with pytest.raises(ConnectionError):
            client.connect()

    def test_connect_creates_pool_once(self):
        with patch(
            "expense_ledger.services.storage.postgres.ThreadedConnectionPool"
        ) as pool_cls:
            client = PostgresClient(db_settings(pool_min_size=2, pool_max_size=5))
            first = client.connect()
            second = client.connect()

        assert first is second
        pool_cls.assert_called_once_with(
            2, 5, dsn="postgresql://ledger@localhost/ledger"
        )

    def test_connect_failure(self):
        with patch(
            "expense_ledger.services.storage.postgres.ThreadedConnectionPool",
            side_effect=psycopg2.OperationalError("connection refused"),
        ):
            client = PostgresClient(db_settings())
            with pytest.raises(ConnectionError, match="connection refused"):
                client.connect()

    def test_commit_and_return(self, pg_client, pool, conn):
        with pg_client.connection() as borrowed:
            assert borrowed is conn

        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        pool.putconn.assert_called_once_with(conn)

    def test_rollback_on_error(self, pg_client, pool, conn):
        with pytest.raises(RuntimeError):
            with pg_client.connection():
                raise RuntimeError("boom")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        pool.putconn.assert_called_once_with(conn)

    def test_pool_exhausted(self, pg_client, pool):
        pool.getconn.side_effect = psycopg2.pool.PoolError("connection pool exhausted")
        with pytest.raises(ConnectionError):
            with pg_client.connection():
                pass

    def test_close(self, pg_client, pool):
        pg_client.close()
        pool.closeall.assert_called_once()


class TestPostgresAccountStorage:
    """Tests for account SQL."""

    def test_list_accounts(self, accounts, cursor):
        cursor.fetchone.return_value = (3,)
        cursor.fetchall.return_value = [(ACCOUNT_ID, "Wallet", "cash")]

        items, total = accounts.list_accounts(page=2, page_size=2)

        assert total == 3
        assert items == [Account(id=ACCOUNT_ID, name="Wallet", type=AccountType.CASH)]
        sql, params = cursor.execute.call_args.args
        assert "ORDER BY name" in sql
        assert params == (2, 2)

    def test_create_account(self, accounts, cursor, conn):
        saved = accounts.create_account(Account(name="Wallet", type=AccountType.CASH))

        sql, params = cursor.execute.call_args.args
        assert sql.startswith("INSERT INTO accounts")
        assert params == (saved.id, "Wallet", "cash")
        conn.commit.assert_called_once()

    def test_update_account(self, accounts, cursor):
        cursor.rowcount = 1
        accounts.update_account(Account(id=ACCOUNT_ID, name="Purse", type=AccountType.OTHER))

        _, params = cursor.execute.call_args.args
        assert params == ("Purse", "other", ACCOUNT_ID)

    def test_update_missing(self, accounts, cursor):
        cursor.rowcount = 0
        with pytest.raises(NotFoundError):
            accounts.update_account(Account(id=ACCOUNT_ID, name="X", type=AccountType.BANK))

    def test_non_uuid_id_never_reaches_database(self, accounts, pool):
        with pytest.raises(NotFoundError):
            accounts.delete_account("not-a-uuid")
        pool.getconn.assert_not_called()

    def test_delete_account(self, accounts, cursor):
        cursor.rowcount = 1
        accounts.delete_account(ACCOUNT_ID)
        assert cursor.execute.call_args.args[1] == (ACCOUNT_ID,)

    def test_database_error(self, accounts, cursor, conn):
        cursor.execute.side_effect = psycopg2.OperationalError("server closed the connection")
        with pytest.raises(StorageError):
            accounts.list_accounts(1, 20)
        conn.rollback.assert_called_once()


class TestPostgresTransactionStorage:
    """Tests for transaction SQL."""

    def test_list_transactions(self, transactions, cursor):
        cursor.fetchone.return_value = (1,)
        cursor.fetchall.return_value = [tx_row()]

        items, total = transactions.list_transactions(ACCOUNT_ID, 1, 20)

        assert total == 1
        assert items[0].amount == Decimal("42.5")
        assert items[0].description == ""
        assert items[0].type == TransactionType.EXPENSE
        sql, params = cursor.execute.call_args.args
        assert "ORDER BY date DESC, id" in sql
        assert params == (ACCOUNT_ID, 20, 0)

    def test_list_for_non_uuid_account(self, transactions, pool):
        assert transactions.list_transactions("missing", 1, 20) == ([], 0)
        pool.getconn.assert_not_called()

    def test_get_transaction(self, transactions, cursor):
        cursor.fetchone.return_value = tx_row(description="Groceries")
        tx = transactions.get_transaction(ACCOUNT_ID, TX_ID)
        assert tx.id == TX_ID
        assert tx.date == WHEN
        assert tx.description == "Groceries"

    def test_get_missing(self, transactions, cursor):
        cursor.fetchone.return_value = None
        assert transactions.get_transaction(ACCOUNT_ID, TX_ID) is None

    def test_get_with_non_uuid(self, transactions):
        assert transactions.get_transaction(ACCOUNT_ID, "t1") is None

    def test_create_transaction(self, transactions, cursor):
        draft = Transaction(
            account_id=ACCOUNT_ID,
            amount=Decimal("10.25"),
            date=WHEN,
            type=TransactionType.INCOME,
        )

        saved = transactions.create_transaction(draft)

        _, params = cursor.execute.call_args.args
        assert params == (saved.id, ACCOUNT_ID, Decimal("10.25"), WHEN, "", "income")

    def test_create_for_missing_account(self, transactions, cursor, conn, pool):
        cursor.execute.side_effect = psycopg2.errors.ForeignKeyViolation("fk violation")
        draft = Transaction(account_id=ACCOUNT_ID, date=WHEN, type=TransactionType.INCOME)

        with pytest.raises(NotFoundError):
            transactions.create_transaction(draft)
        conn.rollback.assert_called_once()
        pool.putconn.assert_called_once_with(conn)

    def test_update_missing(self, transactions, cursor):
        cursor.rowcount = 0
        tx = Transaction(id=TX_ID, account_id=ACCOUNT_ID, date=WHEN, type=TransactionType.INCOME)
        with pytest.raises(NotFoundError):
            transactions.update_transaction(tx)

    def test_delete_is_scoped(self, transactions, cursor):
        cursor.rowcount = 1
        transactions.delete_transaction(ACCOUNT_ID, TX_ID)

        sql, params = cursor.execute.call_args.args
        assert "account_id = %s::uuid AND id = %s::uuid" in sql
        assert params == (ACCOUNT_ID, TX_ID)

    def test_unknown_type_in_row(self, transactions, cursor):
        cursor.fetchone.return_value = tx_row(type="transfer")
        with pytest.raises(StorageError):
            transactions.get_transaction(ACCOUNT_ID, TX_ID)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
