"""
Abstract Storage Interface

The HTTP handlers talk to storage only through these interfaces.
This allows us to:
1. Run against PostgreSQL in production
2. Use in-memory storage for tests and database-less local runs
3. Keep request validation decoupled from SQL

The interface is intentionally small - just the operations the handlers
need. Implementations are shared across concurrent requests and must be
safe to call from several threads at once.
"""

from abc import ABC, abstractmethod
from typing import Optional

from expense_ledger.models.ledger import Account, Transaction


class AccountStorageInterface(ABC):
    """
    Abstract interface for account storage operations.

    Deleting an account also deletes every transaction it owns.
    """

    @abstractmethod
    def list_accounts(
        self,
        page: int,
        page_size: int,
    ) -> tuple[list[Account], int]:
        """
        List one page of accounts, ordered by name.

        Args:
            page: 1-based page number
            page_size: Maximum number of results

        Returns:
            (accounts on this page, total number of accounts)

        Raises:
            StorageError: If the query fails
        """
        pass

    @abstractmethod
    def create_account(self, account: Account) -> Account:
        """
        Persist a new account.

        Args:
            account: The account to save; its id is ignored

        Returns:
            The saved account carrying its newly assigned id

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    def update_account(self, account: Account) -> None:
        """
        Replace the name and type of an existing account.

        Raises:
            NotFoundError: If no account has this id
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    def delete_account(self, account_id: str) -> None:
        """
        Delete an account and its transactions.

        Raises:
            NotFoundError: If no account has this id
            StorageError: If the delete fails
        """
        pass


class TransactionStorageInterface(ABC):
    """
    Abstract interface for transaction storage.

    Every operation is scoped by the owning account id; a transaction is
    invisible through any other account.
    """

    @abstractmethod
    def list_transactions(
        self,
        account_id: str,
        page: int,
        page_size: int,
    ) -> tuple[list[Transaction], int]:
        """
        List one page of an account's transactions, newest first.

        Returns:
            (transactions on this page, total for the account)
        """
        pass

    @abstractmethod
    def get_transaction(
        self,
        account_id: str,
        transaction_id: str,
    ) -> Optional[Transaction]:
        """
        Retrieve a transaction by its ID.

        Returns:
            The transaction if found, None otherwise

        Raises:
            StorageError: If the lookup itself fails
        """
        pass

    @abstractmethod
    def create_transaction(self, transaction: Transaction) -> Transaction:
        """
        Persist a new transaction.

        Returns:
            The saved transaction carrying its newly assigned id

        Raises:
            NotFoundError: If the owning account does not exist
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    def update_transaction(self, transaction: Transaction) -> None:
        """
        Overwrite amount, date, description and type.

        Raises:
            NotFoundError: If no row matched (account_id, id)
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    def delete_transaction(
        self,
        account_id: str,
        transaction_id: str,
    ) -> None:
        """
        Raises:
            NotFoundError: If no row matched (account_id, transaction_id)
            StorageError: If the delete fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
