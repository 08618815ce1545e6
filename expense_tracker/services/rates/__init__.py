"""Exchange rate services package."""

from expense_tracker.services.rates.interface import (
    NetworkError,
    RateProviderInterface,
    StaticRateProvider,
)
from expense_tracker.services.rates.exchange_rate_api import ExchangeRateApiProvider

__all__ = [
    "ExchangeRateApiProvider",
    "NetworkError",
    "RateProviderInterface",
    "StaticRateProvider",
]
