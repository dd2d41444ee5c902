"""
Shared fixtures.

Test strategy:
1. Unit tests for models, validation, helpers and the router
2. API tests through werkzeug's test client against in-memory storage
3. PostgreSQL storage tested against a mocked psycopg2 pool (no real DB)
"""

import pytest
from werkzeug.test import Client

from expense_ledger.application import create_app
from expense_ledger.config import Settings
from expense_ledger.services.storage import (
    InMemoryAccountStorage,
    InMemoryDatabase,
    InMemoryTransactionStorage,
)


@pytest.fixture
def database():
    return InMemoryDatabase()


@pytest.fixture
def account_storage(database):
    return InMemoryAccountStorage(database)


@pytest.fixture
def transaction_storage(database):
    return InMemoryTransactionStorage(database)


@pytest.fixture
def app(account_storage, transaction_storage):
    return create_app(
        settings=Settings(),
        account_storage=account_storage,
        transaction_storage=transaction_storage,
    )


@pytest.fixture
def client(app):
    return Client(app)


@pytest.fixture
def account(client):
    """A stored bank account, as returned by the API."""
    response = client.post("/accounts", json={"name": "Checking", "type": "bank"})
    assert response.status_code == 201
    return response.get_json()


@pytest.fixture
def transaction(client, account):
    """A stored expense on the account fixture, as returned by the API."""
    response = client.post(
        f"/accounts/{account['id']}/transactions",
        json={
            "amount": 42.5,
            "date": "2024-03-01T09:15:00Z",
            "description": "Groceries",
            "type": "expense",
        },
    )
    assert response.status_code == 201
    return response.get_json()
