"""
Tests for the add-transaction flow and component wiring.

Integration tests for the full path:
draft -> validate -> convert to USD -> store -> dashboard reload
"""

import asyncio
from datetime import datetime
from decimal import Decimal

import pytest

from expense_tracker.audit import AuditLogger
from expense_tracker.conversion import DEFAULT_CURRENCIES, CurrencyConverter
from expense_tracker.models.transaction import TransactionDraft, to_epoch_millis
from expense_tracker.orchestrator import AddTransactionFlow, create_app_components
from expense_tracker.services.rates import NetworkError, RateProviderInterface, StaticRateProvider
from expense_tracker.services.storage import StorageError


class FailingProvider(RateProviderInterface):
    """Rate provider that is always offline."""

    def __init__(self):
        self.calls = 0

    async def fetch_rates(self):
        self.calls += 1
        raise NetworkError("Failed to fetch exchange rates: offline")


def _flow(storage, provider=None, **kwargs) -> AddTransactionFlow:
    converter = CurrencyConverter(provider or StaticRateProvider({"USD": 1, "EUR": "0.5"}))
    return AddTransactionFlow(storage, converter, **kwargs)


class TestSave:
    """Tests for AddTransactionFlow.save."""

    def test_saves_usd_transaction(self, storage):
        flow = _flow(storage)
        when = to_epoch_millis(datetime(2024, 3, 5, 10, 0))
        draft = TransactionDraft(
            category="Coffee",
            amount="3.50",
            currency_code="USD",
            date_epoch_millis=when,
        )

        saved = asyncio.run(flow.save(draft))

        assert saved.id is not None
        assert saved.amount_usd == Decimal("3.50")
        assert flow.state.saved is True
        assert flow.state.saved_transaction_id == saved.id

        stored = asyncio.run(storage.get_transaction(saved.id))
        assert stored.category == "Coffee"
        assert stored.date_epoch_millis == when
        assert stored.is_income is False

    def test_converts_foreign_currency(self, storage):
        flow = _flow(storage)

        saved = asyncio.run(flow.save(TransactionDraft(amount="10", currency_code="eur", is_income=True)))

        assert saved.currency_code == "EUR"
        assert saved.amount_original == Decimal("10")
        assert saved.amount_usd == Decimal("20")
        stored = asyncio.run(storage.get_transaction(saved.id))
        assert stored.amount_usd == Decimal("20")
        assert stored.is_income is True

    def test_invalid_amount_never_touches_rates_or_store(self, storage):
        provider = FailingProvider()
        flow = _flow(storage, provider)

        assert asyncio.run(flow.save(TransactionDraft(amount="abc", currency_code="EUR"))) is None

        assert flow.state.error_message == "Invalid amount"
        assert flow.state.saved is False
        assert provider.calls == 0
        assert asyncio.run(storage.get_transaction(1)) is None

    def test_missing_rate_aborts_insert(self, storage):
        flow = _flow(storage)

        assert asyncio.run(flow.save(TransactionDraft(amount="10", currency_code="JPY"))) is None

        assert flow.state.error_message == "Rate not found for JPY"
        assert flow.state.is_saving is False
        assert asyncio.run(storage.get_transaction(1)) is None

    def test_network_error_aborts_insert(self, storage):
        flow = _flow(storage, FailingProvider())

        assert asyncio.run(flow.save(TransactionDraft(amount="10", currency_code="EUR"))) is None

        assert "offline" in flow.state.error_message
        assert asyncio.run(storage.get_transaction(1)) is None

    def test_usd_save_works_offline(self, storage):
        flow = _flow(storage, FailingProvider())
        saved = asyncio.run(flow.save(TransactionDraft(amount="4")))
        assert saved is not None
        assert saved.amount_usd == Decimal("4")

    def test_storage_error_is_reported(self, storage, monkeypatch):
        async def broken_insert(transaction):
            raise StorageError("Failed to save transaction: disk full")

        monkeypatch.setattr(storage, "insert_transaction", broken_insert)
        flow = _flow(storage)

        assert asyncio.run(flow.save(TransactionDraft(amount="4"))) is None
        assert flow.state.error_message == "Failed to save transaction: disk full"

    def test_on_saved_hook_receives_transaction(self, storage):
        received = []

        async def on_saved(transaction):
            received.append(transaction)

        flow = _flow(storage, on_saved=on_saved)
        saved = asyncio.run(flow.save(TransactionDraft(amount="1")))

        assert received == [saved]

    def test_audit_logger_does_not_change_outcome(self, storage):
        flow = _flow(storage, audit_logger=AuditLogger())

        assert asyncio.run(flow.save(TransactionDraft(amount="1"))) is not None
        assert asyncio.run(flow.save(TransactionDraft(amount="0"))) is None

    def test_reset_clears_state(self, storage):
        flow = _flow(storage)
        asyncio.run(flow.save(TransactionDraft(amount="1")))

        flow.reset()

        assert flow.state.saved is False
        assert flow.state.error_message is None


class TestAmountPrecision:
    """Tests for amounts the store can't hold exactly."""

    def test_sub_precision_amount_is_refused_and_dashboard_still_loads(self, storage):
        dashboard, add_flow, _ = create_app_components(
            storage=storage,
            rate_provider=StaticRateProvider({"USD": 1}),
        )

        async def _run():
            saved = await add_flow.save(TransactionDraft(amount="0.0000001"))
            refreshed = await dashboard.refresh()
            return saved, refreshed

        saved, refreshed = asyncio.run(_run())

        assert saved is None
        assert "Amount must be between" in add_flow.state.error_message
        assert refreshed is True
        assert dashboard.state.is_loading is False
        assert dashboard.state.transactions == []

    def test_smallest_storable_amount_round_trips(self, storage):
        dashboard, add_flow, _ = create_app_components(
            storage=storage,
            rate_provider=StaticRateProvider({"USD": 1}),
        )

        saved = asyncio.run(add_flow.save(TransactionDraft(amount="0.000001")))

        assert saved is not None
        assert [t.amount_original for t in dashboard.state.transactions] == [Decimal("0.000001")]
        assert dashboard.state.error_message is None

    def test_usd_amount_beyond_storage_is_reported(self, storage):
        flow = _flow(storage, StaticRateProvider({"USD": 1, "XAU": "0.0000001"}))

        assert asyncio.run(flow.save(TransactionDraft(amount="1000000", currency_code="XAU"))) is None
        assert "outside the storable range" in flow.state.error_message


class TestCurrencies:
    """Tests for the currency list offered to the user."""

    def test_starts_with_defaults(self, storage):
        assert _flow(storage).currencies == list(DEFAULT_CURRENCIES)

    def test_loads_live_currencies(self, storage):
        flow = _flow(storage, StaticRateProvider({"USD": 1, "JPY": 150, "CHF": 0.9}))
        assert asyncio.run(flow.load_currencies()) == ["USD", "CHF", "JPY"]

    def test_offline_keeps_defaults(self, storage):
        flow = _flow(storage, FailingProvider(), default_currencies=["USD", "EUR"])
        assert asyncio.run(flow.load_currencies()) == ["USD", "EUR"]


class TestAppComponents:
    """Tests for component wiring."""

    def test_saving_reloads_dashboard(self, storage):
        dashboard, add_flow, store = create_app_components(
            storage=storage,
            rate_provider=StaticRateProvider({"USD": 1, "GBP": "0.8"}),
        )

        async def _run():
            await dashboard.refresh()
            assert dashboard.state.transactions == []
            await add_flow.save(TransactionDraft(amount="8", currency_code="GBP"))
            await add_flow.save(TransactionDraft(amount="5", is_income=True))

        asyncio.run(_run())

        assert store is storage
        state = dashboard.state
        assert len(state.transactions) == 2
        assert state.total_expense_usd == Decimal("10")
        assert state.total_income_usd == Decimal("5")
        assert state.balance_usd == Decimal("-5")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
