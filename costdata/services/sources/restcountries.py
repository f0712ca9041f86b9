"""
RestCountries Source

Static identity fields for a country: common name, currency code and
currency symbol. Free, no API key. Provides no economic indices.
"""

from typing import Any, Optional

import httpx

from costdata.models.location import CountryRecord, DataQuality
from costdata.services.sources.base import CountrySource, get_json


class RestCountriesSource(CountrySource):
    """Country identity lookup against restcountries.com."""

    name = "restcountries"

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def fetch(
        self,
        country_code: str,
        existing: Optional[CountryRecord] = None,
    ) -> Optional[dict[str, Any]]:
        payload = await get_json(self._client, f"{self._base_url}/{country_code}")

        # The alpha endpoint answers with a one-element list
        if isinstance(payload, list):
            payload = payload[0] if payload else None
        if not isinstance(payload, dict):
            return None

        name = (payload.get("name") or {}).get("common")
        if not name:
            return None

        currencies = payload.get("currencies") or {}
        currency_code = next(iter(currencies), None)
        currency_symbol = (currencies.get(currency_code) or {}).get("symbol") if currency_code else None

        return {
            "name": name,
            "currency": currency_code,
            "currency_symbol": currency_symbol,
            "data_source": self.name,
            "data_quality": DataQuality.VERIFIED,
        }
