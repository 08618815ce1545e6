"""Currency conversion package."""

from expense_tracker.conversion.converter import (
    DEFAULT_CURRENCIES,
    CurrencyConverter,
    RateNotFoundError,
    convert_with_rates,
    is_base_currency,
    to_usd,
)

__all__ = [
    "DEFAULT_CURRENCIES",
    "CurrencyConverter",
    "RateNotFoundError",
    "convert_with_rates",
    "is_base_currency",
    "to_usd",
]
