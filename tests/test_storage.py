"""
Tests for the SQLite transaction store.

All tests run against an in-memory database (see conftest.py).
"""

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from expense_tracker.models.transaction import DateRange, to_epoch_millis
from expense_tracker.services.storage import StorageError, TransactionRow


EVERYTHING = DateRange()


def _insert_all(storage, transactions):
    async def _run():
        return [await storage.insert_transaction(t) for t in transactions]
    return asyncio.run(_run())


class TestInsertAndGet:
    """Tests for inserting and reading back transactions."""

    def test_insert_assigns_increasing_ids(self, storage, make_transaction):
        ids = _insert_all(storage, [make_transaction(), make_transaction()])
        assert ids[0] > 0
        assert ids[1] > ids[0]

    def test_get_returns_stored_fields(self, storage, make_transaction):
        original = make_transaction(
            amount_usd="21.5",
            amount_original="20",
            currency_code="EUR",
            category="Travel",
            receipt_uri="file:///receipts/1.jpg",
        )
        [transaction_id] = _insert_all(storage, [original])

        stored = asyncio.run(storage.get_transaction(transaction_id))

        assert stored.id == transaction_id
        assert stored.category == "Travel"
        assert stored.currency_code == "EUR"
        assert stored.amount_original == Decimal("20")
        assert stored.amount_usd == Decimal("21.5")
        assert stored.date_epoch_millis == original.date_epoch_millis
        assert stored.receipt_uri == "file:///receipts/1.jpg"

    def test_get_missing_returns_none(self, storage):
        assert asyncio.run(storage.get_transaction(999)) is None

    def test_insert_with_existing_id_replaces(self, storage, make_transaction):
        [transaction_id] = _insert_all(storage, [make_transaction(category="Old")])

        replaced_id = asyncio.run(storage.insert_transaction(
            make_transaction(id=transaction_id, category="New", amount_usd="99")
        ))

        assert replaced_id == transaction_id
        stored = asyncio.run(storage.get_transaction(transaction_id))
        assert stored.category == "New"
        assert stored.amount_usd == Decimal("99")
        assert len(asyncio.run(storage.list_paged(EVERYTHING, 10))) == 1


class TestDelete:
    """Tests for deleting transactions."""

    def test_delete_removes_row(self, storage, make_transaction):
        [transaction_id] = _insert_all(storage, [make_transaction()])

        assert asyncio.run(storage.delete_transaction(transaction_id)) is True
        assert asyncio.run(storage.get_transaction(transaction_id)) is None

    def test_delete_is_idempotent(self, storage, make_transaction):
        """Deleting a missing id is not an error."""
        [transaction_id] = _insert_all(storage, [make_transaction()])

        asyncio.run(storage.delete_transaction(transaction_id))
        assert asyncio.run(storage.delete_transaction(transaction_id)) is False
        assert asyncio.run(storage.delete_transaction(12345)) is False


class TestListPaged:
    """Tests for paged listing."""

    def test_newest_first(self, storage, make_transaction):
        base = datetime(2024, 3, 1, 12, 0)
        _insert_all(storage, [
            make_transaction(category="middle", when=base + timedelta(days=1)),
            make_transaction(category="oldest", when=base),
            make_transaction(category="newest", when=base + timedelta(days=2)),
        ])

        rows = asyncio.run(storage.list_paged(EVERYTHING, 10))

        assert [t.category for t in rows] == ["newest", "middle", "oldest"]

    def test_equal_dates_order_by_id_descending(self, storage, make_transaction):
        when = datetime(2024, 3, 1, 12, 0)
        ids = _insert_all(storage, [make_transaction(when=when) for _ in range(3)])

        rows = asyncio.run(storage.list_paged(EVERYTHING, 10))

        assert [t.id for t in rows] == sorted(ids, reverse=True)

    def test_pages_tile_without_gaps_or_overlap(self, storage, make_transaction):
        base = datetime(2024, 1, 1, 8, 0)
        _insert_all(storage, [
            make_transaction(category=f"t{i}", when=base + timedelta(hours=i))
            for i in range(23)
        ])

        async def _all_pages():
            pages = []
            for page in range(4):
                pages.append(await storage.list_paged(EVERYTHING, 10, page * 10))
            return pages

        pages = asyncio.run(_all_pages())
        full = asyncio.run(storage.list_paged(EVERYTHING, 100))

        assert [len(p) for p in pages] == [10, 10, 3, 0]
        tiled = [t.id for page in pages for t in page]
        assert tiled == [t.id for t in full]
        assert len(set(tiled)) == 23

    def test_range_filters_rows(self, storage, make_transaction):
        _insert_all(storage, [
            make_transaction(category="before", when=datetime(2024, 2, 28, 23, 59)),
            make_transaction(category="at_start", when=datetime(2024, 3, 1)),
            make_transaction(category="inside", when=datetime(2024, 3, 20)),
            make_transaction(category="at_end", when=datetime(2024, 4, 1)),
        ])
        march = DateRange(
            start=to_epoch_millis(datetime(2024, 3, 1)),
            end=to_epoch_millis(datetime(2024, 4, 1)),
        )

        rows = asyncio.run(storage.list_paged(march, 10))

        assert [t.category for t in rows] == ["inside", "at_start"]

    def test_non_positive_limit_returns_empty(self, storage, make_transaction):
        _insert_all(storage, [make_transaction()])
        assert asyncio.run(storage.list_paged(EVERYTHING, 0)) == []


class TestSums:
    """Tests for the USD aggregates."""

    def test_empty_store_sums_to_zero(self, storage):
        assert asyncio.run(storage.sum_income_usd(EVERYTHING)) == Decimal("0")
        assert asyncio.run(storage.sum_expense_usd(EVERYTHING)) == Decimal("0")

    def test_income_and_expense_partition_rows(self, storage, make_transaction):
        _insert_all(storage, [
            make_transaction(amount_usd="100", is_income=True),
            make_transaction(amount_usd="50.25", is_income=True),
            make_transaction(amount_usd="30", is_income=False),
            make_transaction(amount_usd="4.75", is_income=False),
        ])

        income = asyncio.run(storage.sum_income_usd(EVERYTHING))
        expense = asyncio.run(storage.sum_expense_usd(EVERYTHING))
        rows = asyncio.run(storage.list_paged(EVERYTHING, 100))

        assert income == Decimal("150.25")
        assert expense == Decimal("34.75")
        assert income + expense == sum((t.amount_usd for t in rows), Decimal("0"))

    def test_sums_respect_range(self, storage, make_transaction):
        _insert_all(storage, [
            make_transaction(amount_usd="10", when=datetime(2024, 2, 10)),
            make_transaction(amount_usd="20", when=datetime(2024, 3, 10)),
        ])
        march = DateRange(start=to_epoch_millis(datetime(2024, 3, 1)))

        assert asyncio.run(storage.sum_expense_usd(march)) == Decimal("20")


class TestAmountPrecision:
    """Tests for amounts at the edges of the stored precision."""

    def test_smallest_amount_reads_back_unchanged(self, storage, make_transaction):
        [transaction_id] = _insert_all(storage, [
            make_transaction(amount_original="0.000001", amount_usd="0.000001"),
        ])

        stored = asyncio.run(storage.get_transaction(transaction_id))

        assert stored.amount_original == Decimal("0.000001")
        assert asyncio.run(storage.list_paged(EVERYTHING, 10))[0].id == transaction_id

    def test_large_amount_reads_back_unchanged(self, storage, make_transaction):
        [transaction_id] = _insert_all(storage, [make_transaction(amount_usd="999999.5")])

        stored = asyncio.run(storage.get_transaction(transaction_id))

        assert stored.amount_original == Decimal("999999.5")

    def test_amount_below_precision_is_rejected(self, storage, make_transaction):
        with pytest.raises(StorageError, match="outside the storable range"):
            asyncio.run(storage.insert_transaction(
                make_transaction(amount_original="0.0000001", amount_usd="1")
            ))
        assert asyncio.run(storage.list_paged(EVERYTHING, 10)) == []

    def test_amount_above_precision_is_rejected(self, storage, make_transaction):
        with pytest.raises(StorageError, match="outside the storable range"):
            asyncio.run(storage.insert_transaction(
                make_transaction(amount_original="1e400", amount_usd="1")
            ))
        with pytest.raises(StorageError, match="USD amount"):
            asyncio.run(storage.insert_transaction(
                make_transaction(amount_original="1", amount_usd="1000000000000")
            ))

    def test_unreadable_row_becomes_storage_error(self, storage, make_transaction):
        [transaction_id] = _insert_all(storage, [make_transaction()])
        with storage._session_factory() as session:
            session.execute(
                update(TransactionRow)
                .where(TransactionRow.id == transaction_id)
                .values(amount_original=Decimal("0"))
            )
            session.commit()

        with pytest.raises(StorageError, match="unreadable"):
            asyncio.run(storage.list_paged(EVERYTHING, 10))
        with pytest.raises(StorageError, match="unreadable"):
            asyncio.run(storage.get_transaction(transaction_id))


class TestStorageErrors:
    """Tests for error wrapping."""

    def test_database_errors_become_storage_errors(self, storage, make_transaction, monkeypatch):
        def broken_session():
            raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

        monkeypatch.setattr(storage, "_session_factory", broken_session)

        with pytest.raises(StorageError, match="Failed to list transactions"):
            asyncio.run(storage.list_paged(EVERYTHING, 10))
        with pytest.raises(StorageError, match="Failed to save transaction"):
            asyncio.run(storage.insert_transaction(make_transaction()))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
