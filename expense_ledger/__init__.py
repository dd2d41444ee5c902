"""
Expense Ledger - Source Package

A small HTTP API for tracking financial accounts and the transactions
recorded against them, backed by PostgreSQL.

LAYERS (request flow):
1. Router resolves a handler from method + path
2. Handler parses the path, validates the JSON body
3. Storage executes the validated operation
4. Handler serializes the result (or error) as JSON
"""

__version__ = "1.0.0"
__author__ = "Expense Ledger Team"
