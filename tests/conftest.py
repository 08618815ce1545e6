"""
Pytest fixtures for Expense Tracker tests. Uses an in-memory SQLite store.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

import pytest

from expense_tracker.models.transaction import Transaction, to_epoch_millis
from expense_tracker.services.storage import SQLiteTransactionStorage, create_store_engine


@pytest.fixture
def storage():
    """Fresh in-memory transaction store for each test."""
    store = SQLiteTransactionStorage(engine=create_store_engine("sqlite://"))
    yield store
    store.close()


@pytest.fixture
def make_transaction():
    """Factory for unsaved transactions with sensible defaults."""

    def _make(
        amount_usd: str = "10",
        is_income: bool = False,
        when: datetime = datetime(2024, 3, 5, 14, 30),
        category: str = "Food",
        currency_code: str = "USD",
        amount_original: Optional[str] = None,
        receipt_uri: Optional[str] = None,
        id: Optional[int] = None,
    ) -> Transaction:
        return Transaction(
            id=id,
            category=category,
            amount_original=Decimal(amount_original or amount_usd),
            currency_code=currency_code,
            amount_usd=Decimal(amount_usd),
            is_income=is_income,
            date_epoch_millis=to_epoch_millis(when),
            receipt_uri=receipt_uri,
        )

    return _make
