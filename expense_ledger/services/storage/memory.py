"""
In-Memory Storage Implementation

Keeps accounts and transactions in dictionaries guarded by a single lock.
Used by the test suite and when no DATABASE_URL is configured.

Ordering, cascade and not-found semantics match the PostgreSQL
implementation, so handlers behave the same against either backend.
Models are copied on the way in and out; callers never share state with
the store.
"""

import threading
from typing import Optional
from uuid import uuid4

from expense_ledger.models.ledger import Account, Transaction
from expense_ledger.services.storage.interface import (
    AccountStorageInterface,
    NotFoundError,
    TransactionStorageInterface,
)


def _page_slice(page: int, page_size: int) -> slice:
    offset = (page - 1) * page_size
    return slice(offset, offset + page_size)


class InMemoryDatabase:
    """Shared state for the in-memory storages. Thread-safe."""

    def __init__(self):
        self.lock = threading.RLock()
        self.accounts: dict[str, Account] = {}
        self.transactions: dict[str, Transaction] = {}

    def clear(self) -> None:
        with self.lock:
            self.accounts.clear()
            self.transactions.clear()


class InMemoryAccountStorage(AccountStorageInterface):
    """Account storage backed by an InMemoryDatabase."""

    def __init__(self, database: Optional[InMemoryDatabase] = None):
        self._db = database or InMemoryDatabase()

    def list_accounts(
        self,
        page: int,
        page_size: int,
    ) -> tuple[list[Account], int]:
        with self._db.lock:
            accounts = sorted(
                self._db.accounts.values(),
                key=lambda a: (a.name, a.id),
            )
        window = accounts[_page_slice(page, page_size)]
        return [a.model_copy() for a in window], len(accounts)

    def create_account(self, account: Account) -> Account:
        saved = account.model_copy(update={"id": str(uuid4())})
        with self._db.lock:
            self._db.accounts[saved.id] = saved
        return saved.model_copy()

    def update_account(self, account: Account) -> None:
        with self._db.lock:
            if account.id not in self._db.accounts:
                raise NotFoundError(f"Account not found: {account.id}")
            self._db.accounts[account.id] = account.model_copy()

    def delete_account(self, account_id: str) -> None:
        with self._db.lock:
            if self._db.accounts.pop(account_id, None) is None:
                raise NotFoundError(f"Account not found: {account_id}")
            # ON DELETE CASCADE
            owned = [
                tx_id for tx_id, tx in self._db.transactions.items()
                if tx.account_id == account_id
            ]
            for tx_id in owned:
                del self._db.transactions[tx_id]


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Transaction storage backed by an InMemoryDatabase."""

    def __init__(self, database: Optional[InMemoryDatabase] = None):
        self._db = database or InMemoryDatabase()

    def _find(self, account_id: str, transaction_id: str) -> Optional[Transaction]:
        tx = self._db.transactions.get(transaction_id)
        if tx is None or tx.account_id != account_id:
            return None
        return tx

    def list_transactions(
        self,
        account_id: str,
        page: int,
        page_size: int,
    ) -> tuple[list[Transaction], int]:
        with self._db.lock:
            owned = [
                tx for tx in self._db.transactions.values()
                if tx.account_id == account_id
            ]
        # date DESC, id ASC
        owned.sort(key=lambda tx: tx.id)
        owned.sort(key=lambda tx: tx.date, reverse=True)
        window = owned[_page_slice(page, page_size)]
        return [tx.model_copy() for tx in window], len(owned)

    def get_transaction(
        self,
        account_id: str,
        transaction_id: str,
    ) -> Optional[Transaction]:
        with self._db.lock:
            tx = self._find(account_id, transaction_id)
            return tx.model_copy() if tx is not None else None

    def create_transaction(self, transaction: Transaction) -> Transaction:
        saved = transaction.model_copy(update={"id": str(uuid4())})
        with self._db.lock:
            if saved.account_id not in self._db.accounts:
                raise NotFoundError(f"Account not found: {saved.account_id}")
            self._db.transactions[saved.id] = saved
        return saved.model_copy()

    def update_transaction(self, transaction: Transaction) -> None:
        with self._db.lock:
            if self._find(transaction.account_id, transaction.id) is None:
                raise NotFoundError(f"Transaction not found: {transaction.id}")
            self._db.transactions[transaction.id] = transaction.model_copy()

    def delete_transaction(
        self,
        account_id: str,
        transaction_id: str,
    ) -> None:
        with self._db.lock:
            if self._find(account_id, transaction_id) is None:
                raise NotFoundError(f"Transaction not found: {transaction_id}")
            del self._db.transactions[transaction_id]
