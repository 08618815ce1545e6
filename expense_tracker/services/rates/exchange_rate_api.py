"""
Exchange Rate Service using open.er-api.com

DESIGN DECISION: We use the open ExchangeRate-API endpoint because:
1. No API key required
2. One GET returns every rate against USD
3. Rates are already expressed as "units of currency per 1 USD"

This service handles:
1. A single unauthenticated GET per call
2. Parsing the JSON body into Decimal rates
3. Turning every transport or parse problem into NetworkError

CRITICAL: There is NO retry and NO cache. Callers decide the fallback.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx
import structlog

from expense_tracker.config import get_settings
from expense_tracker.models.transaction import RateSnapshot
from expense_tracker.services.rates.interface import NetworkError, RateProviderInterface


logger = structlog.get_logger(__name__)


class ExchangeRateApiProvider(RateProviderInterface):
    """
    Fetches the latest USD rates from the remote API.

    Response shape:
        {"result": "success", "base_code": "USD", "rates": {"EUR": 0.92, ...}}

    A missing or null "rates" field means "no rates", not an error.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        url: Optional[str] = None,
    ):
        """
        Initialize the provider.

        Args:
            client: Shared HTTP client. If None, a client is opened and
                    closed for every fetch.
            url: Full URL of the latest-rates endpoint. Defaults to settings.
        """
        self._client = client
        self._url = url or get_settings().rates.latest_url

    def _parse_rates(self, payload: Any) -> RateSnapshot:
        """Convert the JSON body to a rate snapshot."""
        if not isinstance(payload, dict):
            raise NetworkError("Unexpected exchange rate response: body is not an object")

        if payload.get("result") == "error":
            error_type = payload.get("error-type", "unknown")
            raise NetworkError(f"Exchange rate API reported an error: {error_type}")

        raw_rates = payload.get("rates")
        if raw_rates is None:
            return {}
        if not isinstance(raw_rates, dict):
            raise NetworkError("Unexpected exchange rate response: rates is not an object")

        rates: RateSnapshot = {}
        for code, value in raw_rates.items():
            try:
                rate = Decimal(str(value))
            except (InvalidOperation, TypeError, ValueError) as e:
                raise NetworkError(f"Invalid rate for {code}: {value!r}") from e
            if not rate.is_finite():
                raise NetworkError(f"Invalid rate for {code}: {value!r}")
            rates[str(code).strip().upper()] = rate
        return rates

    async def _get(self, client: httpx.AsyncClient) -> Any:
        response = await client.get(self._url)
        response.raise_for_status()
        return response.json()

    async def fetch_rates(self) -> RateSnapshot:
        """Fetch the latest rate snapshot (one network round trip)."""
        try:
            if self._client is not None:
                payload = await self._get(self._client)
            else:
                async with httpx.AsyncClient() as client:
                    payload = await self._get(client)
        except httpx.HTTPError as e:
            raise NetworkError(f"Failed to fetch exchange rates: {e}") from e
        except ValueError as e:
            # Body was not valid JSON
            raise NetworkError(f"Failed to parse exchange rates: {e}") from e

        rates = self._parse_rates(payload)
        logger.debug("exchange_rates_fetched", url=self._url, currency_count=len(rates))
        return rates
