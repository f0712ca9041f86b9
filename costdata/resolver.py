"""
Tiered Data Resolver

This module ties together storage, data sources and request logging and
defines the two lookup flows:
1. Country (cache → RestCountries → exchange rates → estimator)
2. City (country prerequisite → cache → geocoding → estimator)

DESIGN DECISION: The resolver always prefers SOME answer over an error:
- A fresh cached record is returned untouched
- A stale record is refreshed; if every source fails it is served as-is
- Only a key with no cache and no source data is "not found"
- A failed cache write still returns the freshly resolved record

Every call writes exactly one request log entry.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from costdata.audit import RequestLogger
from costdata.budget import BudgetPlanner
from costdata.config import Settings, get_settings
from costdata.currency import CurrencyService
from costdata.models.audit import RequestLogBuilder, RequestLogEntry
from costdata.models.location import (
    CityRecord,
    CitySummary,
    CountryRecord,
    CountrySummary,
    LookupKind,
    utc_now,
)
from costdata.services.sources import (
    CityEstimator,
    CitySource,
    CountryEstimator,
    CountrySource,
    ExchangeRateSource,
    OpenMeteoGeocodingSource,
    RestCountriesSource,
)
from costdata.services.storage import (
    CityStorageInterface,
    CountryStorageInterface,
    Database,
    InMemoryCityStorage,
    InMemoryCountryStorage,
    InMemoryExchangeRateStorage,
    InMemoryRequestLogStorage,
    SqlCityStorage,
    SqlCountryStorage,
    SqlExchangeRateStorage,
    SqlRequestLogStorage,
    StorageError,
)


DEFAULT_TTL = timedelta(days=7)
DEFAULT_SOURCE_TIMEOUT = 8.0

RecordT = TypeVar("RecordT", CountryRecord, CityRecord)

logger = structlog.get_logger("costdata.resolver")


def merge_fields(
    existing: Optional[Mapping[str, Any]],
    partial: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Shallow-merge a source's partial record over the existing record.

    None values in `partial` never overwrite existing values.
    """
    merged = dict(existing or {})
    merged.update({key: value for key, value in partial.items() if value is not None})
    return merged


def is_fresh(last_fetched_at: datetime, ttl: timedelta, now: datetime) -> bool:
    """True while the record is younger than `ttl`."""
    return now - last_fetched_at < ttl


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class TieredDataResolver:
    """
    Resolves country and city cost data.

    Flow per key:
    1. Read cache → fresh? return it
    2. Try sources in order; first non-empty partial wins
    3. Merge partial over cached record, stamp last_fetched_at, persist
    4. No source answered → serve stale cache, or report not found
    """

    def __init__(
        self,
        country_storage: CountryStorageInterface,
        city_storage: CityStorageInterface,
        country_sources: Sequence[CountrySource],
        city_sources: Sequence[CitySource],
        request_logger: Optional[RequestLogger] = None,
        country_ttl: timedelta = DEFAULT_TTL,
        city_ttl: timedelta = DEFAULT_TTL,
        source_timeout: float = DEFAULT_SOURCE_TIMEOUT,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._countries = country_storage
        self._cities = city_storage
        self._country_sources = list(country_sources)
        self._city_sources = list(city_sources)
        self._request_logger = request_logger or RequestLogger()
        self._country_ttl = country_ttl
        self._city_ttl = city_ttl
        self._source_timeout = source_timeout
        self._clock = clock

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def resolve_country(self, country_code: str) -> Optional[CountryRecord]:
        """
        Get country data, fetching it if not cached or stale.

        Args:
            country_code: ISO 3166-1 alpha-2 code, already validated

        Returns:
            The country record, or None if nothing knows this country
        """
        started = time.perf_counter()
        code = country_code.upper()

        try:
            cached = await self._read(self._countries.get_country(code), key=code)

            if cached and is_fresh(cached.last_fetched_at, self._country_ttl, self._clock()):
                logger.debug("cache_hit", kind="country", key=code)
                await self._log(RequestLogBuilder.cache_hit(
                    LookupKind.COUNTRY, code, None, _elapsed_ms(started),
                ))
                return cached

            logger.info("fetching", kind="country", key=code, stale=cached is not None)
            record = await self._run_chain(
                sources=self._country_sources,
                call=lambda source: source.fetch(code, cached),
                build=lambda merged: CountryRecord(**{
                    **merged,
                    "code": code,
                    "last_fetched_at": self._clock(),
                }),
                existing=cached,
                key=code,
            )

            if record is None:
                return await self._resolution_failed(LookupKind.COUNTRY, code, None, cached, started)

            saved = await self._persist(self._countries.upsert_country(record), record, key=code)
            await self._log(RequestLogBuilder.refreshed(
                LookupKind.COUNTRY, code, None, record.data_source, _elapsed_ms(started),
            ))
            return saved

        except Exception as e:
            await self._log(RequestLogBuilder.not_found(
                LookupKind.COUNTRY, code, None, _elapsed_ms(started), error_message=str(e) or type(e).__name__,
            ))
            raise

    async def resolve_city(self, city_name: str, country_code: str) -> Optional[CityRecord]:
        """
        Get city data, fetching it if not cached or stale.

        The owning country must be cached or resolvable first.

        Returns:
            The city record, or None if the country or city can't be resolved
        """
        started = time.perf_counter()
        code = country_code.upper()
        name = city_name.strip()
        key = f"{name}, {code}"

        try:
            country = await self._read(self._countries.get_country(code), key=code)
            if country is None:
                country = await self.resolve_country(code)
                if country is None:
                    await self._log(RequestLogBuilder.not_found(
                        LookupKind.CITY, code, name, _elapsed_ms(started),
                        error_message=f"Country not found: {code}",
                    ))
                    return None

            cached = await self._read(self._cities.get_city(name, code), key=key)

            if cached and is_fresh(cached.last_fetched_at, self._city_ttl, self._clock()):
                logger.debug("cache_hit", kind="city", key=key)
                await self._log(RequestLogBuilder.cache_hit(
                    LookupKind.CITY, code, name, _elapsed_ms(started),
                ))
                return cached

            logger.info("fetching", kind="city", key=key, stale=cached is not None)
            record = await self._run_chain(
                sources=self._city_sources,
                call=lambda source: source.fetch(name, code, cached),
                build=lambda merged: CityRecord(**{
                    **merged,
                    "name": name,
                    "country_code": code,
                    "last_fetched_at": self._clock(),
                }),
                existing=cached,
                key=key,
            )

            if record is None:
                return await self._resolution_failed(LookupKind.CITY, code, name, cached, started)

            saved = await self._persist(self._cities.upsert_city(record), record, key=key)
            await self._log(RequestLogBuilder.refreshed(
                LookupKind.CITY, code, name, record.data_source, _elapsed_ms(started),
            ))
            return saved

        except Exception as e:
            await self._log(RequestLogBuilder.not_found(
                LookupKind.CITY, code, name, _elapsed_ms(started), error_message=str(e) or type(e).__name__,
            ))
            raise

    async def list_cached_countries(self) -> list[CountrySummary]:
        """All cached countries as {code, name}, by name. Never fetches."""
        return [record.to_summary() for record in await self._countries.list_countries()]

    async def list_cached_cities(self, country_code: str) -> list[CitySummary]:
        """Cached cities of a country as {name, population}, largest first. Never fetches."""
        return [record.to_summary() for record in await self._cities.list_cities(country_code.upper())]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run_chain(
        self,
        sources: Sequence[Any],
        call: Callable[[Any], Awaitable[Optional[dict[str, Any]]]],
        build: Callable[[dict[str, Any]], RecordT],
        existing: Optional[RecordT],
        key: str,
    ) -> Optional[RecordT]:
        """
        Try each source in order. The first partial that merges into a
        valid record wins; failures and empty answers move on.
        """
        existing_fields = existing.model_dump() if existing else None

        for source in sources:
            try:
                partial = await asyncio.wait_for(call(source), timeout=self._source_timeout)
            except asyncio.TimeoutError:
                logger.warning("source_timeout", source=source.name, key=key, timeout_s=self._source_timeout)
                continue
            except Exception as e:
                logger.warning("source_failed", source=source.name, key=key, error=str(e))
                continue

            if not partial:
                logger.debug("source_empty", source=source.name, key=key)
                continue

            try:
                record = build(merge_fields(existing_fields, partial))
            except ValidationError as e:
                logger.warning(
                    "source_incomplete",
                    source=source.name,
                    key=key,
                    errors=e.error_count(),
                )
                continue

            logger.info("source_answered", source=source.name, key=key, quality=record.data_quality.value)
            return record

        return None

    async def _resolution_failed(
        self,
        kind: LookupKind,
        country_code: str,
        city_name: Optional[str],
        cached: Optional[RecordT],
        started: float,
    ) -> Optional[RecordT]:
        """Every source failed: serve the stale record if there is one."""
        if cached is not None:
            logger.warning(
                "serving_stale",
                kind=kind.value,
                key=city_name or country_code,
                last_fetched_at=cached.last_fetched_at.isoformat(),
            )
            await self._log(RequestLogBuilder.served_stale(
                kind, country_code, city_name, _elapsed_ms(started),
            ))
            return cached

        await self._log(RequestLogBuilder.not_found(
            kind, country_code, city_name, _elapsed_ms(started),
        ))
        return None

    async def _read(self, lookup: Awaitable[Optional[RecordT]], key: str) -> Optional[RecordT]:
        """A failed cache read counts as a miss."""
        try:
            return await lookup
        except StorageError as e:
            logger.error("cache_read_failed", key=key, error=str(e))
            return None

    async def _persist(self, upsert: Awaitable[RecordT], record: RecordT, key: str) -> RecordT:
        """A failed cache write loses freshness, not the answer."""
        try:
            return await upsert
        except StorageError as e:
            logger.error("cache_write_failed", key=key, error=str(e))
            return record

    async def _log(self, entry: RequestLogEntry) -> None:
        await self._request_logger.log(entry)


@dataclass
class AppComponents:
    """Everything the hosting process owns. Close with `aclose()`."""

    resolver: TieredDataResolver
    currency: CurrencyService
    planner: Optional[BudgetPlanner] = None
    http_client: Optional[httpx.AsyncClient] = None
    database: Optional[Database] = None

    async def aclose(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()
        if self.database is not None:
            self.database.close()


def create_app_components(
    settings: Optional[Settings] = None,
    use_database: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to build from (defaults to get_settings())
        use_database: Whether to connect the SQL store.
                     Set to False to run on in-memory storage.

    Returns:
        AppComponents with an open HTTP client and (optionally) database
    """
    settings = settings or get_settings()
    source_settings = settings.sources
    cache_settings = settings.cache

    database = None
    if use_database:
        db_settings = settings.database
        try:
            database = Database(db_settings.url, echo=db_settings.echo)
            database.connect()
        except StorageError as e:
            # Storage unreachable or misconfigured - continue on in-memory storage
            logger.warning("storage_unavailable", error=str(e))
            database = None

    if database is not None:
        country_storage = SqlCountryStorage(database)
        city_storage = SqlCityStorage(database)
        log_storage = SqlRequestLogStorage(database)
        rate_storage = SqlExchangeRateStorage(database)
    else:
        country_storage = InMemoryCountryStorage()
        city_storage = InMemoryCityStorage()
        log_storage = InMemoryRequestLogStorage()
        rate_storage = InMemoryExchangeRateStorage()

    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(source_settings.request_timeout_seconds),
        headers={"User-Agent": source_settings.user_agent},
        follow_redirects=True,
    )
    rate_source = ExchangeRateSource(http_client, source_settings.exchange_rate_url)

    resolver = TieredDataResolver(
        country_storage=country_storage,
        city_storage=city_storage,
        country_sources=[
            RestCountriesSource(http_client, source_settings.restcountries_url),
            rate_source,
            CountryEstimator(),
        ],
        city_sources=[
            OpenMeteoGeocodingSource(http_client, source_settings.geocoding_url),
            CityEstimator(),
        ],
        request_logger=RequestLogger(log_storage),
        country_ttl=timedelta(days=cache_settings.country_ttl_days),
        city_ttl=timedelta(days=cache_settings.city_ttl_days),
        source_timeout=source_settings.request_timeout_seconds,
    )

    currency = CurrencyService(
        rate_source=rate_source,
        storage=rate_storage,
        ttl=timedelta(minutes=cache_settings.exchange_rate_ttl_minutes),
        source_timeout=source_settings.request_timeout_seconds,
    )

    return AppComponents(
        resolver=resolver,
        currency=currency,
        planner=BudgetPlanner(currency),
        http_client=http_client,
        database=database,
    )
