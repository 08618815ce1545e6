"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap SQLite for another database later
2. Use in-memory databases or fakes for testing
3. Keep the dashboard and add-transaction flows decoupled from SQL

The interface is intentionally small - we're not building a full ORM.
Just insert, delete, one paged read and two sums.

CRITICAL: list_paged and both sums apply the SAME date range predicate.
A dashboard built from the three calls with one DateRange is consistent.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from expense_tracker.models.transaction import DateRange, Transaction


class TransactionStorageInterface(ABC):
    """
    Abstract interface for transaction storage operations.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def insert_transaction(self, transaction: Transaction) -> int:
        """
        Durably store a transaction.

        Args:
            transaction: The transaction to store. If it already carries
                an id, the stored row with that id is replaced.

        Returns:
            The id of the stored row

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: int) -> bool:
        """
        Delete a transaction by id.

        Deleting a missing id is a no-op.

        Returns:
            True if a row was removed, False if none existed

        Raises:
            StorageError: If the delete fails
        """
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """
        Retrieve a transaction by id.

        Returns:
            The transaction if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_paged(
        self,
        date_range: DateRange,
        limit: int,
        offset: int = 0,
    ) -> list[Transaction]:
        """
        List transactions inside a date range, newest first.

        Args:
            date_range: start inclusive, end exclusive, None = unbounded
            limit: Maximum number of results
            offset: Number of matching results to skip

        Returns:
            At most `limit` transactions ordered by date descending
        """
        pass

    @abstractmethod
    async def sum_income_usd(self, date_range: DateRange) -> Decimal:
        """
        Sum amount_usd over income transactions in the range.

        Returns:
            The total, Decimal("0") when nothing matches
        """
        pass

    @abstractmethod
    async def sum_expense_usd(self, date_range: DateRange) -> Decimal:
        """
        Sum amount_usd over expense transactions in the range.

        Returns:
            The total, Decimal("0") when nothing matches
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not open the storage backend."""
    pass
