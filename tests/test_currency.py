"""Tests for exchange rate lookup and conversion."""

import asyncio
from datetime import timedelta

import pytest

from costdata.currency import CurrencyService
from costdata.models.location import ExchangeRate
from costdata.services.sources import SourceUnavailableError
from costdata.services.storage import InMemoryExchangeRateStorage, StorageError


class FakeRateSource:
    """Stands in for ExchangeRateSource.fetch_usd_rates."""

    name = "exchangerate-api"

    def __init__(self, rates=None, error=None):
        self.rates = rates or {"USD": 1.0, "EUR": 0.8, "IDR": 16000.0}
        self.error = error
        self.calls = 0

    async def fetch_usd_rates(self):
        self.calls += 1
        if self.error:
            raise self.error
        return dict(self.rates)


class BrokenRateStorage(InMemoryExchangeRateStorage):
    async def get_latest_rate(self, from_currency, to_currency, newer_than):
        raise StorageError("no connection")

    async def save_rate(self, rate):
        raise StorageError("no connection")


class TestGetRate:

    def test_same_currency(self, clock):
        source = FakeRateSource()
        service = CurrencyService(rate_source=source, clock=clock)

        rate = asyncio.run(service.get_rate("idr", "IDR"))

        assert rate.rate == 1.0
        assert rate.source == "identity"
        assert source.calls == 0

    def test_live_cross_rate(self, clock):
        storage = InMemoryExchangeRateStorage()
        service = CurrencyService(rate_source=FakeRateSource(), storage=storage, clock=clock)

        rate = asyncio.run(service.get_rate("EUR", "IDR"))

        assert rate.rate == pytest.approx(20000)
        assert rate.source == "exchangerate-api"
        assert rate.timestamp == clock()
        saved = asyncio.run(storage.get_latest_rate("EUR", "IDR", newer_than=clock() - timedelta(hours=1)))
        assert saved.rate == pytest.approx(20000)

    def test_memory_cache_within_ttl(self, clock):
        source = FakeRateSource()
        service = CurrencyService(rate_source=source, clock=clock)

        asyncio.run(service.get_rate("USD", "IDR"))
        clock.advance(timedelta(minutes=59))
        asyncio.run(service.get_rate("USD", "IDR"))

        assert source.calls == 1

    def test_refetch_after_ttl(self, clock):
        source = FakeRateSource()
        service = CurrencyService(rate_source=source, clock=clock)

        asyncio.run(service.get_rate("USD", "IDR"))
        clock.advance(timedelta(minutes=61))
        asyncio.run(service.get_rate("USD", "IDR"))

        assert source.calls == 2

    def test_stored_rate_used_before_live(self, clock):
        storage = InMemoryExchangeRateStorage()
        asyncio.run(storage.save_rate(ExchangeRate(
            from_currency="USD",
            to_currency="IDR",
            rate=16500,
            source="exchangerate-api",
            timestamp=clock() - timedelta(minutes=10),
        )))
        source = FakeRateSource()
        service = CurrencyService(rate_source=source, storage=storage, clock=clock)

        rate = asyncio.run(service.get_rate("USD", "IDR"))

        assert rate.rate == 16500
        assert source.calls == 0

    def test_fallback_when_source_down(self, clock):
        source = FakeRateSource(error=SourceUnavailableError("down"))
        service = CurrencyService(rate_source=source, clock=clock)

        rate = asyncio.run(service.get_rate("EUR", "IDR"))
        asyncio.run(service.get_rate("EUR", "IDR"))

        assert rate.rate == 19255
        assert rate.source == "fallback"
        # fallback answers are not cached
        assert source.calls == 2

    def test_fallback_inverse_pair(self, clock):
        service = CurrencyService(fallback_rates={"EUR": {"THB": 40.0}}, clock=clock)

        rate = asyncio.run(service.get_rate("THB", "EUR"))

        assert rate.rate == pytest.approx(0.025)
        assert rate.source == "fallback"

    def test_unknown_pair_defaults_to_one(self, clock):
        service = CurrencyService(rate_source=FakeRateSource(), clock=clock)

        rate = asyncio.run(service.get_rate("XAU", "BTC"))

        assert rate.rate == 1.0
        assert rate.source == "default"

    def test_storage_failure_falls_through_to_live(self, clock):
        service = CurrencyService(rate_source=FakeRateSource(), storage=BrokenRateStorage(), clock=clock)

        rate = asyncio.run(service.get_rate("USD", "EUR"))

        assert rate.rate == pytest.approx(0.8)


class TestConversion:

    def test_get_exchange_rate_is_float(self, clock):
        service = CurrencyService(rate_source=FakeRateSource(), clock=clock)

        assert asyncio.run(service.get_exchange_rate("USD", "IDR")) == pytest.approx(16000)

    def test_convert_amount(self, clock):
        service = CurrencyService(rate_source=FakeRateSource(), clock=clock)

        assert asyncio.run(service.convert_amount(2_000_000, "IDR", "USD")) == pytest.approx(125)

    def test_convert_same_currency_returns_amount(self, clock):
        source = FakeRateSource()
        service = CurrencyService(rate_source=source, clock=clock)

        assert asyncio.run(service.convert_amount(42.5, "EUR", "eur")) == 42.5
        assert source.calls == 0
