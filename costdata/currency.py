"""
Currency Conversion

Exchange rates follow the same cache-or-fetch shape as the resolver:

1. In-process memory cache (rate younger than the TTL)
2. Stored rate history (newest entry younger than the TTL)
3. Live USD-based rate table (cross rate = rates[to] / rates[from])
4. Static fallback table for the pairs an expat budget in Bali needs

Live rates are written back to memory and storage. Fallback rates are
not cached, so the next call tries the live source again.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from costdata.models.location import ExchangeRate, utc_now
from costdata.services.sources import ExchangeRateSource
from costdata.services.storage import ExchangeRateStorageInterface, StorageError


DEFAULT_RATE_TTL = timedelta(hours=1)

# 1 unit of the outer currency = N units of the inner currency
FALLBACK_RATES: dict[str, dict[str, float]] = {
    "EUR": {
        "IDR": 19255,
        "USD": 1.05,
        "GBP": 0.83,
    },
    "USD": {
        "IDR": 18338,
        "EUR": 0.95,
        "GBP": 0.79,
    },
    "IDR": {
        "EUR": 0.000052,
        "USD": 0.000055,
        "GBP": 0.000043,
    },
}

logger = structlog.get_logger("costdata.currency")


class CurrencyService:
    """
    Exchange rate lookup and amount conversion.

    Never raises for an unknown pair; the last resort is a rate of 1.0
    tagged with source "default".
    """

    def __init__(
        self,
        rate_source: Optional[ExchangeRateSource] = None,
        storage: Optional[ExchangeRateStorageInterface] = None,
        ttl: timedelta = DEFAULT_RATE_TTL,
        source_timeout: float = 8.0,
        fallback_rates: Optional[dict[str, dict[str, float]]] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._rate_source = rate_source
        self._storage = storage
        self._ttl = ttl
        self._source_timeout = source_timeout
        self._fallback_rates = FALLBACK_RATES if fallback_rates is None else fallback_rates
        self._clock = clock
        self._memory: dict[tuple[str, str], ExchangeRate] = {}

    async def get_exchange_rate(self, from_currency: str, to_currency: str) -> float:
        """How many units of `to_currency` one unit of `from_currency` buys."""
        return (await self.get_rate(from_currency, to_currency)).rate

    async def get_rate(self, from_currency: str, to_currency: str) -> ExchangeRate:
        """Same as `get_exchange_rate` but with source and timestamp."""
        pair = (from_currency.upper(), to_currency.upper())
        now = self._clock()

        if pair[0] == pair[1]:
            return ExchangeRate(from_currency=pair[0], to_currency=pair[1], rate=1.0, source="identity", timestamp=now)

        cached = self._memory.get(pair)
        if cached and now - cached.timestamp < self._ttl:
            return cached

        stored = await self._read_stored(pair, newer_than=now - self._ttl)
        if stored:
            self._memory[pair] = stored
            return stored

        live = await self._fetch_live(pair, now)
        if live:
            self._memory[pair] = live
            await self._save(live)
            return live

        return self._fallback(pair, now)

    async def convert_amount(self, amount: float, from_currency: str, to_currency: str) -> float:
        """Convert `amount` between currencies."""
        if from_currency.upper() == to_currency.upper():
            return amount
        rate = await self.get_exchange_rate(from_currency, to_currency)
        return amount * rate

    async def _read_stored(self, pair: tuple[str, str], newer_than: datetime) -> Optional[ExchangeRate]:
        if self._storage is None:
            return None
        try:
            return await self._storage.get_latest_rate(pair[0], pair[1], newer_than)
        except StorageError as e:
            logger.error("rate_read_failed", pair="/".join(pair), error=str(e))
            return None

    async def _save(self, rate: ExchangeRate) -> None:
        if self._storage is None:
            return
        try:
            await self._storage.save_rate(rate)
        except StorageError as e:
            logger.error("rate_save_failed", pair=f"{rate.from_currency}/{rate.to_currency}", error=str(e))

    async def _fetch_live(self, pair: tuple[str, str], now: datetime) -> Optional[ExchangeRate]:
        if self._rate_source is None:
            return None
        try:
            rates = await asyncio.wait_for(self._rate_source.fetch_usd_rates(), timeout=self._source_timeout)
        except Exception as e:
            logger.warning("rate_source_failed", pair="/".join(pair), error=str(e))
            return None

        from_per_usd = rates.get(pair[0])
        to_per_usd = rates.get(pair[1])
        if not from_per_usd or not to_per_usd:
            logger.warning("rate_pair_unknown", pair="/".join(pair))
            return None

        return ExchangeRate(
            from_currency=pair[0],
            to_currency=pair[1],
            rate=to_per_usd / from_per_usd,
            source=self._rate_source.name,
            timestamp=now,
        )

    def _fallback(self, pair: tuple[str, str], now: datetime) -> ExchangeRate:
        rate = self._fallback_rates.get(pair[0], {}).get(pair[1])
        if rate is None:
            inverse = self._fallback_rates.get(pair[1], {}).get(pair[0])
            rate = 1 / inverse if inverse else None

        if rate is None:
            logger.warning("rate_defaulted", pair="/".join(pair))
            return ExchangeRate(from_currency=pair[0], to_currency=pair[1], rate=1.0, source="default", timestamp=now)

        return ExchangeRate(from_currency=pair[0], to_currency=pair[1], rate=rate, source="fallback", timestamp=now)
