"""
Development server for Expense Ledger.

    python app/main.py

Reads configuration from the environment / .env (see
expense_ledger.config.settings): PORT, HOST, LOG_LEVEL, DATABASE_URL.
Without DATABASE_URL the API runs on the in-memory store.
"""

from expense_ledger.application import serve


if __name__ == "__main__":
    serve()
