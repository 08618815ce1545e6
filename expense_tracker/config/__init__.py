"""Configuration package."""

from expense_tracker.config.settings import (
    AppSettings,
    RatesSettings,
    Settings,
    StoreSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "RatesSettings",
    "Settings",
    "StoreSettings",
    "get_settings",
    "validate_all_settings",
]
