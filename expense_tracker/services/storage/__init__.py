"""
Storage Services Package

Provides the abstract transaction store interface and its SQLite implementation.
"""

from expense_tracker.services.storage.interface import (
    ConnectionError,
    StorageError,
    TransactionStorageInterface,
)
from expense_tracker.services.storage.sqlite_store import (
    SQLiteTransactionStorage,
    TransactionRow,
    create_store_engine,
)

__all__ = [
    # Interfaces
    "TransactionStorageInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # SQLite implementation
    "SQLiteTransactionStorage",
    "TransactionRow",
    "create_store_engine",
]
