"""
Deterministic Estimators

The last resort of every source chain. No network, no randomness.

DESIGN DECISION: The country table is a CLOSED set. An unknown country
gets None, not a made-up average, so "not found" stays meaningful.
Every estimate is tagged `estimated` so callers can tell it apart from
live data.

City estimates are neutral: every multiplier is 1.0, i.e. "assume the
city costs the same as the rest of its country".
"""

from typing import Any, Optional

from costdata.models.location import CityRecord, CountryRecord, DataQuality
from costdata.services.sources.base import CitySource, CountrySource


# Indices are relative to the US (= 100). Salaries are monthly, local currency.
COUNTRY_ESTIMATES: dict[str, dict[str, Any]] = {
    "US": {
        "name": "United States",
        "currency": "USD",
        "currency_symbol": "$",
        "exchange_rate_to_usd": 1.0,
        "exchange_rate_to_eur": 0.85,
        "cost_of_living_index": 100,
        "rent_index": 100,
        "groceries_index": 100,
        "restaurant_price_index": 100,
        "local_purchasing_power": 100,
        "average_salary": 5000,
    },
    "DE": {
        "name": "Germany",
        "currency": "EUR",
        "currency_symbol": "€",
        "exchange_rate_to_usd": 1.18,
        "exchange_rate_to_eur": 1.0,
        "cost_of_living_index": 75,
        "rent_index": 65,
        "groceries_index": 70,
        "restaurant_price_index": 70,
        "local_purchasing_power": 110,
        "average_salary": 3500,
    },
    "ID": {
        "name": "Indonesia",
        "currency": "IDR",
        "currency_symbol": "Rp",
        "exchange_rate_to_usd": 0.000065,
        "exchange_rate_to_eur": 0.000055,
        "cost_of_living_index": 35,
        "rent_index": 15,
        "groceries_index": 30,
        "restaurant_price_index": 20,
        "local_purchasing_power": 25,
        "average_salary": 500000,
    },
}


class CountryEstimator(CountrySource):
    """Static country estimates."""

    name = "estimated"

    def __init__(self, estimates: Optional[dict[str, dict[str, Any]]] = None):
        self._estimates = COUNTRY_ESTIMATES if estimates is None else estimates

    @property
    def known_codes(self) -> list[str]:
        return sorted(self._estimates)

    async def fetch(
        self,
        country_code: str,
        existing: Optional[CountryRecord] = None,
    ) -> Optional[dict[str, Any]]:
        estimate = self._estimates.get(country_code)
        if estimate is None:
            return None
        return {
            **estimate,
            "data_source": self.name,
            "data_quality": DataQuality.ESTIMATED,
        }


class CityEstimator(CitySource):
    """Neutral city estimate. Always answers."""

    name = "estimated"

    async def fetch(
        self,
        city_name: str,
        country_code: str,
        existing: Optional[CityRecord] = None,
    ) -> Optional[dict[str, Any]]:
        return {
            "housing_multiplier": 1.0,
            "food_multiplier": 1.0,
            "transport_multiplier": 1.0,
            "utilities_multiplier": 1.0,
            "entertainment_multiplier": 1.0,
            "data_source": self.name,
            "data_quality": DataQuality.ESTIMATED,
        }
