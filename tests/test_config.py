"""
Tests for settings and audit logging.
"""

import asyncio

import pytest

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.config import AppSettings, RatesSettings, StoreSettings, validate_all_settings
from expense_tracker.models.audit import AuditEventBuilder


class TestSettings:
    """Tests for pydantic-settings configuration."""

    def test_defaults(self):
        assert StoreSettings().database_url == "sqlite:///data/expenses.db"
        assert RatesSettings().latest_url == "https://open.er-api.com/v6/latest/USD"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("EXPENSE_STORE_DATABASE_URL", "sqlite:///:memory:")
        monkeypatch.setenv("EXCHANGE_RATES_BASE_URL", "http://localhost:8080/")

        assert StoreSettings().database_path is None
        assert RatesSettings().latest_url == "http://localhost:8080/v6/latest/USD"

    def test_rejects_non_sqlite_url(self, monkeypatch):
        monkeypatch.setenv("EXPENSE_STORE_DATABASE_URL", "postgresql://localhost/db")
        with pytest.raises(ValueError, match="Unsupported database URL"):
            StoreSettings()

    def test_default_currencies_list(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_CURRENCIES", "usd, eur ,,jpy")
        assert AppSettings().default_currencies_list == ["USD", "EUR", "JPY"]

    def test_log_level_normalized(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert AppSettings().log_level == "DEBUG"

    def test_validate_all_settings_reports_bad_section(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "loud")
        results = validate_all_settings()
        assert results["store"] is True
        assert results["app"] is False
        assert "Unknown log level" in results["app_error"]


class TestAuditLogger:
    """Tests for the audit logger."""

    def test_log_returns_true(self):
        event = AuditEventBuilder.export_generated("csv", 3)
        assert asyncio.run(AuditLogger().log(event)) is True

    def test_helpers_never_raise(self):
        logger = AuditLogger()

        async def _run():
            await logger.log_transaction_saved(1, "EUR", "20", create_correlation_id())
            await logger.log_transaction_deleted(1, existed=False)
            await logger.log_stale_reload_discarded(1, 2)
            await logger.log_rates_fetch_failed("offline")

        asyncio.run(_run())

    def test_correlation_ids_are_unique(self):
        assert create_correlation_id() != create_correlation_id()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
