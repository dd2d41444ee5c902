"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage:
PostgreSQL for production, in-memory for tests and database-less runs.
"""

from expense_ledger.services.storage.interface import (
    AccountStorageInterface,
    ConnectionError,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from expense_ledger.services.storage.memory import (
    InMemoryAccountStorage,
    InMemoryDatabase,
    InMemoryTransactionStorage,
)
from expense_ledger.services.storage.postgres import (
    PostgresAccountStorage,
    PostgresClient,
    PostgresTransactionStorage,
)

__all__ = [
    # Interfaces
    "AccountStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAccountStorage",
    "InMemoryDatabase",
    "InMemoryTransactionStorage",
    # PostgreSQL implementation
    "PostgresAccountStorage",
    "PostgresClient",
    "PostgresTransactionStorage",
]
