"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Local transaction store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EXPENSE_STORE_",
        extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///data/expenses.db",
        description="SQLAlchemy URL of the transaction database"
    )
    echo_sql: bool = Field(
        default=False,
        description="Log every SQL statement (debugging only)"
    )

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Only SQLite is supported for the local store."""
        if not v.startswith("sqlite"):
            raise ValueError(f"Unsupported database URL: {v}. Expected a sqlite:// URL")
        return v

    @property
    def database_path(self) -> Path | None:
        """Filesystem path of the database, None for in-memory databases."""
        path = self.database_url.split("///", 1)[1] if "///" in self.database_url else ""
        if not path or path == ":memory:":
            return None
        return Path(path)


class RatesSettings(BaseSettings):
    """Exchange rate API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EXCHANGE_RATES_",
        extra="ignore"
    )

    base_url: str = Field(
        default="https://open.er-api.com",
        description="Base URL of the exchange rate API"
    )
    latest_path: str = Field(
        default="/v6/latest/USD",
        description="Path returning the latest USD-based rates"
    )

    @property
    def latest_url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.latest_path.lstrip("/")


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    # Currency list shown when the rate API can't be reached
    default_currencies: str = Field(
        default="USD,EUR,GBP,AED,SAR,EGP",
        description="Comma-separated fallback list of currency codes"
    )
    default_category: str = Field(
        default="General",
        min_length=1,
        description="Category preselected for new transactions"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def default_currencies_list(self) -> list[str]:
        """Get fallback currencies as a list."""
        return [code.strip().upper() for code in self.default_currencies.split(",") if code.strip()]


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def store(self) -> StoreSettings:
        return StoreSettings()

    @property
    def rates(self) -> RatesSettings:
        return RatesSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool | str]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    {setting_name}_error entry for every section that failed.
    """
    results: dict[str, bool | str] = {}
    settings = get_settings()

    for name in ("store", "rates", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
