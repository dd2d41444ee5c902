"""Services package."""

from expense_ledger.services.storage import (
    AccountStorageInterface,
    ConnectionError,
    InMemoryAccountStorage,
    InMemoryDatabase,
    InMemoryTransactionStorage,
    NotFoundError,
    PostgresAccountStorage,
    PostgresClient,
    PostgresTransactionStorage,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    "AccountStorageInterface",
    "ConnectionError",
    "InMemoryAccountStorage",
    "InMemoryDatabase",
    "InMemoryTransactionStorage",
    "NotFoundError",
    "PostgresAccountStorage",
    "PostgresClient",
    "PostgresTransactionStorage",
    "StorageError",
    "TransactionStorageInterface",
]
