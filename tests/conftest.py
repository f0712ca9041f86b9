"""
Shared test doubles.

Test strategy:
1. Unit tests for models, validation, sources and stores
2. Resolver and currency flows with fake sources and in-memory stores
3. No real network calls in tests (fakes and httpx.MockTransport)
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest

from costdata.audit import RequestLogger
from costdata.models.location import CityRecord, CountryRecord
from costdata.resolver import TieredDataResolver
from costdata.services.sources import CitySource, CountryEstimator, CityEstimator, CountrySource
from costdata.services.storage import (
    InMemoryCityStorage,
    InMemoryCountryStorage,
    InMemoryRequestLogStorage,
)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class FakeCountrySource(CountrySource):
    """Answers from a dict, or raises `error` on every call."""

    def __init__(self, name: str, answers: Optional[dict[str, dict]] = None, error: Optional[Exception] = None):
        self.name = name
        self.answers = answers or {}
        self.error = error
        self.calls: list[str] = []

    async def fetch(self, country_code: str, existing: Optional[CountryRecord] = None) -> Optional[dict[str, Any]]:
        self.calls.append(country_code)
        if self.error:
            raise self.error
        answer = self.answers.get(country_code)
        return dict(answer) if answer else None


class FakeCitySource(CitySource):
    """Answers keyed by (city name, country code)."""

    def __init__(self, name: str, answers: Optional[dict[tuple[str, str], dict]] = None, error: Optional[Exception] = None):
        self.name = name
        self.answers = answers or {}
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def fetch(self, city_name: str, country_code: str, existing: Optional[CityRecord] = None) -> Optional[dict[str, Any]]:
        self.calls.append((city_name, country_code))
        if self.error:
            raise self.error
        answer = self.answers.get((city_name, country_code))
        return dict(answer) if answer else None


class ResolverHarness:
    """A resolver wired to in-memory stores, plus handles on everything."""

    def __init__(self, country_sources=None, city_sources=None, clock=None, **kwargs):
        self.clock = clock or FrozenClock()
        self.countries = kwargs.pop("country_storage", None) or InMemoryCountryStorage()
        self.cities = kwargs.pop("city_storage", None) or InMemoryCityStorage()
        self.logs = kwargs.pop("log_storage", None) or InMemoryRequestLogStorage()
        self.country_sources = country_sources if country_sources is not None else [CountryEstimator()]
        self.city_sources = city_sources if city_sources is not None else [CityEstimator()]
        self.resolver = TieredDataResolver(
            country_storage=self.countries,
            city_storage=self.cities,
            country_sources=self.country_sources,
            city_sources=self.city_sources,
            request_logger=RequestLogger(self.logs),
            clock=self.clock,
            **kwargs,
        )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def harness_factory(clock):
    def factory(**kwargs) -> ResolverHarness:
        kwargs.setdefault("clock", clock)
        return ResolverHarness(**kwargs)
    return factory
