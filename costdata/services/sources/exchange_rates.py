"""
Exchange Rate Source

Live exchange rates from a USD-based rate table
(`{"base": "USD", "rates": {"EUR": 0.92, "IDR": 16250.0, ...}}`).

For a country we need the value of ONE unit of its currency in USD and
in EUR:

    rate_to_usd = 1 / rates[currency]
    rate_to_eur = rate_to_usd * rates["EUR"]

The currency code must already be known from the cached record; this
source does not discover it.
"""

from typing import Any, Optional

import httpx

from costdata.models.location import CountryRecord, DataQuality
from costdata.services.sources.base import (
    CountrySource,
    SourceUnavailableError,
    get_json,
)


class ExchangeRateSource(CountrySource):
    """Exchange-rate refresh for countries whose currency is already cached."""

    name = "exchangerate-api"

    def __init__(self, client: httpx.AsyncClient, url: str):
        self._client = client
        self._url = url

    async def fetch_usd_rates(self) -> dict[str, float]:
        """
        Fetch the USD-based rate table.

        Raises:
            SourceUnavailableError: If the table cannot be fetched or parsed
        """
        payload = await get_json(self._client, self._url)
        rates = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(rates, dict) or not rates:
            raise SourceUnavailableError("Exchange rate table is empty")

        table = {}
        for code, value in rates.items():
            try:
                rate = float(value)
            except (TypeError, ValueError):
                continue
            if rate > 0:
                table[code.upper()] = rate
        table.setdefault("USD", 1.0)
        return table

    async def fetch(
        self,
        country_code: str,
        existing: Optional[CountryRecord] = None,
    ) -> Optional[dict[str, Any]]:
        if existing is None or not existing.currency:
            return None

        rates = await self.fetch_usd_rates()
        per_usd = rates.get(existing.currency)
        if per_usd is None:
            return None

        rate_to_usd = 1 / per_usd
        return {
            "exchange_rate_to_usd": rate_to_usd,
            "exchange_rate_to_eur": rate_to_usd * rates.get("EUR", 1.0),
            "data_source": self.name,
            "data_quality": DataQuality.VERIFIED,
        }
