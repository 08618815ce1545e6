"""
USD Normalization

Converts an amount in any currency to its USD equivalent.

Rates are "units of currency per 1 USD", so:
    usd = amount / rate

DESIGN DECISION: Conversion is DETERMINISTIC given a rate snapshot.
The only I/O is an optional fetch when the caller has no snapshot.
"""

from decimal import Decimal
from typing import Mapping, Optional, Sequence

import structlog

from expense_tracker.audit import AuditLogger
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.transaction import BASE_CURRENCY, RateSnapshot
from expense_tracker.services.rates import NetworkError, RateProviderInterface


logger = structlog.get_logger(__name__)

# Shown when live rates can't be loaded
DEFAULT_CURRENCIES: tuple[str, ...] = ("USD", "EUR", "GBP", "AED", "SAR", "EGP")


class RateNotFoundError(Exception):
    """The requested currency has no usable rate in the snapshot."""

    def __init__(self, currency_code: str, message: Optional[str] = None):
        self.currency_code = currency_code
        super().__init__(message or f"Rate not found for {currency_code}")


def _coerce_amount(amount: Decimal | int | float | str) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def is_base_currency(currency_code: str) -> bool:
    return currency_code.strip().upper() == BASE_CURRENCY


def convert_with_rates(
    amount: Decimal | int | float | str,
    currency_code: str,
    rates: Mapping[str, Decimal | float | str],
) -> Decimal:
    """
    Convert using an explicit rate snapshot. No I/O.

    Raises:
        RateNotFoundError: If the code is missing or its rate is not positive
    """
    value = _coerce_amount(amount)
    if is_base_currency(currency_code):
        return value

    code = currency_code.strip().upper()
    if code not in rates:
        raise RateNotFoundError(code)

    rate = _coerce_amount(rates[code])
    if not rate.is_finite() or rate <= 0:
        raise RateNotFoundError(code, f"Rate for {code} is not usable: {rate}")

    return value / rate


async def to_usd(
    amount: Decimal | int | float | str,
    currency_code: str,
    rates: Optional[Mapping[str, Decimal | float | str]] = None,
    provider: Optional[RateProviderInterface] = None,
) -> Decimal:
    """
    Convert an amount to USD.

    USD amounts are returned unchanged without looking at any rates.
    Otherwise `rates` is used when given, else a fresh snapshot is
    fetched from `provider`.

    Raises:
        RateNotFoundError: If no rate is available for the currency
        NetworkError: If fetching the snapshot fails
    """
    if is_base_currency(currency_code):
        return _coerce_amount(amount)

    if rates is None:
        if provider is None:
            raise RateNotFoundError(
                currency_code.strip().upper(),
                f"No rates available to convert {currency_code.strip().upper()}",
            )
        rates = await provider.fetch_rates()

    return convert_with_rates(amount, currency_code, rates)


class CurrencyConverter:
    """
    Converts amounts to USD using a rate provider.

    Also supplies the list of currencies offered for new transactions.
    """

    def __init__(
        self,
        provider: RateProviderInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._provider = provider
        self._audit_logger = audit_logger

    async def to_usd(
        self,
        amount: Decimal | int | float | str,
        currency_code: str,
        rates: Optional[Mapping[str, Decimal | float | str]] = None,
    ) -> Decimal:
        if rates is None and not is_base_currency(currency_code):
            rates = await self.fetch_rates()

        try:
            return await to_usd(amount, currency_code, rates=rates, provider=self._provider)
        except RateNotFoundError as e:
            if self._audit_logger:
                await self._audit_logger.log_failure(AuditEventType.RATE_NOT_FOUND, e)
            raise

    async def fetch_rates(self) -> RateSnapshot:
        """Fetch a fresh snapshot, auditing the outcome."""
        try:
            rates = await self._provider.fetch_rates()
        except NetworkError as e:
            if self._audit_logger:
                await self._audit_logger.log_rates_fetch_failed(str(e))
            raise

        if self._audit_logger:
            await self._audit_logger.log_rates_fetched(len(rates))
        return rates

    async def available_currencies(
        self,
        default: Sequence[str] = DEFAULT_CURRENCIES,
    ) -> list[str]:
        """
        Currencies the user can pick: USD first, then the rest sorted.

        Falls back to `default` when rates can't be fetched or are empty.
        """
        try:
            rates = await self.fetch_rates()
        except NetworkError as e:
            logger.warning("currency_list_fallback", error=str(e))
            return list(default)

        if not rates:
            return list(default)

        others = sorted(code for code in rates if code != BASE_CURRENCY)
        return [BASE_CURRENCY] + others
