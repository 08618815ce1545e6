"""
Abstract Rate Provider Interface

A rate provider returns ONE snapshot: currency code -> units of that
currency per 1 USD. Snapshots are never cached or versioned - every call
is a fresh fetch, and the caller owns the result.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Mapping, Optional

from expense_tracker.models.transaction import BASE_CURRENCY, RateSnapshot


class NetworkError(Exception):
    """Exchange rates could not be fetched or parsed."""
    pass


class RateProviderInterface(ABC):
    """Abstract interface for exchange rate sources."""

    @abstractmethod
    async def fetch_rates(self) -> RateSnapshot:
        """
        Fetch the latest USD-based rate snapshot.

        Returns:
            Mapping of uppercase currency code to rate. Empty (never None)
            when the source reports no rates.

        Raises:
            NetworkError: On any transport or parse failure
        """
        pass


class StaticRateProvider(RateProviderInterface):
    """
    Deterministic, in-memory rates.

    Useful offline and in tests. Returns a fresh copy on every call.
    """

    def __init__(self, rates: Optional[Mapping[str, Decimal | float | str]] = None):
        self._rates = {
            code.strip().upper(): Decimal(str(value))
            for code, value in (rates or {BASE_CURRENCY: Decimal("1")}).items()
        }

    async def fetch_rates(self) -> RateSnapshot:
        return dict(self._rates)
