"""
In-Memory Storage Implementation

Dictionaries keyed by the natural key. Used by the test suite and when
the service runs without a database.

Records are copied on the way in and out so callers can never mutate
what is stored.
"""

from collections import deque
from datetime import datetime
from typing import Optional

from costdata.models.audit import RequestLogEntry
from costdata.models.location import CityRecord, CountryRecord, ExchangeRate
from costdata.services.storage.interface import (
    CityStorageInterface,
    CountryStorageInterface,
    ExchangeRateStorageInterface,
    RequestLogStorageInterface,
)


# Append-only histories are capped; the in-memory stores also back long-running processes
DEFAULT_MAX_HISTORY = 10_000


class InMemoryCountryStorage(CountryStorageInterface):

    def __init__(self):
        self._countries: dict[str, CountryRecord] = {}

    async def get_country(self, code: str) -> Optional[CountryRecord]:
        record = self._countries.get(code.upper())
        return record.model_copy() if record else None

    async def upsert_country(self, record: CountryRecord) -> CountryRecord:
        self._countries[record.code] = record.model_copy()
        return record.model_copy()

    async def list_countries(self) -> list[CountryRecord]:
        return sorted(
            (record.model_copy() for record in self._countries.values()),
            key=lambda r: r.name,
        )


class InMemoryCityStorage(CityStorageInterface):

    def __init__(self):
        self._cities: dict[tuple[str, str], CityRecord] = {}

    async def get_city(self, name: str, country_code: str) -> Optional[CityRecord]:
        record = self._cities.get((name.strip(), country_code.upper()))
        return record.model_copy() if record else None

    async def upsert_city(self, record: CityRecord) -> CityRecord:
        self._cities[(record.name, record.country_code)] = record.model_copy()
        return record.model_copy()

    async def list_cities(self, country_code: str) -> list[CityRecord]:
        cities = [
            record.model_copy()
            for (_, code), record in self._cities.items()
            if code == country_code.upper()
        ]
        cities.sort(key=lambda c: (c.population is None, -(c.population or 0)))
        return cities


class InMemoryRequestLogStorage(RequestLogStorageInterface):
    """Keeps the newest `max_entries` entries; older ones are dropped."""

    def __init__(self, max_entries: int = DEFAULT_MAX_HISTORY):
        self._entries: deque[RequestLogEntry] = deque(maxlen=max_entries)

    @property
    def entries(self) -> list[RequestLogEntry]:
        """Retained entries, oldest first."""
        return list(self._entries)

    async def append_entry(self, entry: RequestLogEntry) -> bool:
        self._entries.append(entry)
        return True

    async def get_recent_entries(self, limit: int = 100) -> list[RequestLogEntry]:
        return list(reversed(self._entries))[:limit]


class InMemoryExchangeRateStorage(ExchangeRateStorageInterface):

    def __init__(self, max_rates: int = DEFAULT_MAX_HISTORY):
        self._rates: deque[ExchangeRate] = deque(maxlen=max_rates)

    async def get_latest_rate(
        self,
        from_currency: str,
        to_currency: str,
        newer_than: datetime,
    ) -> Optional[ExchangeRate]:
        matches = [
            rate for rate in self._rates
            if rate.from_currency == from_currency.upper()
            and rate.to_currency == to_currency.upper()
            and rate.timestamp >= newer_than
        ]
        if not matches:
            return None
        return max(matches, key=lambda r: r.timestamp)

    async def save_rate(self, rate: ExchangeRate) -> bool:
        self._rates.append(rate)
        return True
