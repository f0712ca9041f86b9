"""
SQLAlchemy Storage Implementation

DESIGN DECISION: A relational store holds the cache because:
1. Unique constraints give us upsert-by-natural-key for free
2. Concurrent refreshes of the same key collapse into one row
3. SQLite works out of the box, PostgreSQL in production

TRADEOFFS:
- The session API is synchronous. Every store method runs its session
  work in a worker thread so a slow query never blocks the event loop
- No migrations; tables are created on connect

The `Database` object is created and closed by the hosting process and
passed into every store class. Nothing here is created at import time.
"""

import asyncio
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional, TypeVar
from uuid import UUID

from sqlalchemy import (
    TIMESTAMP,
    BigInteger,
    Boolean,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from costdata.models.audit import RequestLogEntry
from costdata.models.location import (
    CityRecord,
    CountryRecord,
    DataQuality,
    ExchangeRate,
    LookupKind,
)
from costdata.services.storage.interface import (
    CityStorageInterface,
    CountryStorageInterface,
    DuplicateError,
    ExchangeRateStorageInterface,
    RequestLogStorageInterface,
    StorageConnectionError,
    StorageError,
)

T = TypeVar("T")


Base = declarative_base()


class CountryRow(Base):
    __tablename__ = "countries"
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    code = Column(String(2), unique=True, nullable=False, index=True)
    name = Column(Text, nullable=False, index=True)
    currency = Column(String(3), nullable=False)
    currency_symbol = Column(String(10), nullable=False)
    exchange_rate_to_usd = Column(Float, nullable=False)
    exchange_rate_to_eur = Column(Float, nullable=False)
    cost_of_living_index = Column(Float)
    rent_index = Column(Float)
    groceries_index = Column(Float)
    restaurant_price_index = Column(Float)
    local_purchasing_power = Column(Float)
    average_salary = Column(Float)
    data_source = Column(Text, nullable=False)
    data_quality = Column(String(16), nullable=False)
    last_fetched_at = Column(TIMESTAMP(timezone=True), nullable=False)


class CityRow(Base):
    __tablename__ = "cities"
    __table_args__ = (UniqueConstraint("name", "country_code", name="uq_city_name_country"),)
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    name = Column(Text, nullable=False)
    country_code = Column(String(2), ForeignKey("countries.code"), nullable=False, index=True)
    latitude = Column(Float)
    longitude = Column(Float)
    population = Column(BigInteger)
    housing_multiplier = Column(Float, nullable=False)
    food_multiplier = Column(Float, nullable=False)
    transport_multiplier = Column(Float, nullable=False)
    utilities_multiplier = Column(Float, nullable=False)
    entertainment_multiplier = Column(Float, nullable=False)
    avg_rent_studio = Column(Float)
    avg_rent_1_bedroom = Column(Float)
    avg_rent_3_bedroom = Column(Float)
    avg_meal_inexpensive = Column(Float)
    avg_meal_mid_range = Column(Float)
    avg_transport_pass = Column(Float)
    avg_utilities = Column(Float)
    avg_internet = Column(Float)
    avg_gym_membership = Column(Float)
    data_source = Column(Text, nullable=False)
    data_quality = Column(String(16), nullable=False)
    last_fetched_at = Column(TIMESTAMP(timezone=True), nullable=False)


class RequestLogRow(Base):
    __tablename__ = "api_request_logs"
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    entry_id = Column(String(36), unique=True, nullable=False)
    ts = Column(TIMESTAMP(timezone=True), nullable=False, index=True)
    endpoint = Column(String(16), nullable=False)
    country_code = Column(String(2), nullable=False, index=True)
    city_name = Column(Text)
    success = Column(Boolean, nullable=False)
    response_time_ms = Column(Integer, nullable=False)
    data_source = Column(Text)
    error_message = Column(Text)


class ExchangeRateRow(Base):
    __tablename__ = "exchange_rates"
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    from_currency = Column(String(3), nullable=False, index=True)
    to_currency = Column(String(3), nullable=False, index=True)
    rate = Column(Float, nullable=False)
    source = Column(Text, nullable=False)
    ts = Column(TIMESTAMP(timezone=True), nullable=False, index=True)


COUNTRY_FIELDS = list(CountryRecord.model_fields)
CITY_FIELDS = list(CityRecord.model_fields)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Engine and session factory for one database URL.

    Call `connect()` once at startup and `close()` at shutdown.
    """

    def __init__(self, url: str, echo: bool = False):
        self._url = url
        self._echo = echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def url(self) -> str:
        return self._url

    def _create_engine(self) -> Engine:
        if self._url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            if self._url in ("sqlite://", "sqlite:///:memory:"):
                # one shared connection, otherwise each session sees an empty DB
                kwargs["poolclass"] = StaticPool
            engine = create_engine(self._url, echo=self._echo, **kwargs)
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
            return engine
        return create_engine(self._url, echo=self._echo, pool_pre_ping=True)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(OperationalError),
        reraise=True,
    )
    def _prepare(self, engine: Engine) -> None:
        """Verify connectivity and create tables. Only transient failures are retried."""
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        Base.metadata.create_all(bind=engine)

    def connect(self) -> Engine:
        """
        Create the engine, verify connectivity and create tables.

        Raises:
            StorageConnectionError: If the URL or driver is unusable, or
                                    the database stays unreachable
        """
        if self._engine is None:
            try:
                engine = self._create_engine()
            except (SQLAlchemyError, ImportError) as e:
                # bad URL or missing driver: permanent, never retried
                raise StorageConnectionError(f"Invalid database configuration: {e}") from e

            try:
                self._prepare(engine)
            except SQLAlchemyError as e:
                engine.dispose()
                raise StorageConnectionError(f"Failed to connect to database: {e}") from e

            self._engine = engine
            self._session_factory = sessionmaker(
                autoflush=False,
                expire_on_commit=False,
                bind=engine,
            )
        return self._engine

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session scope; rolls back on error and always closes."""
        if self._session_factory is None:
            raise StorageConnectionError("Database is not connected")
        session = self._session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    async def run(self, work: Callable[[Session], T], error_message: str) -> T:
        """
        Run `work(session)` in a worker thread.

        Backend errors are re-raised as StorageError prefixed with `error_message`.
        """
        def scoped() -> T:
            try:
                with self.session() as session:
                    return work(session)
            except SQLAlchemyError as e:
                raise StorageError(f"{error_message}: {e}") from e

        return await asyncio.to_thread(scoped)


def _row_values(row, fields: list[str]) -> dict:
    return {field: getattr(row, field) for field in fields}


def _upsert(session: Session, model, key: dict, values: dict):
    """
    Update the row matching `key` or insert a new one.

    A lost insert race surfaces as IntegrityError; the second attempt
    finds the winner's row and updates it. Any other IntegrityError
    (a missing parent row, for one) propagates.

    Raises:
        DuplicateError: If updating the winner's row collides as well
    """
    for attempt in range(2):
        row = session.query(model).filter_by(**key).one_or_none()
        inserting = row is None
        if inserting:
            row = model(**key)
            session.add(row)
        for column, value in values.items():
            setattr(row, column, value)
        try:
            session.commit()
            return row
        except IntegrityError:
            session.rollback()
            if attempt == 0 and inserting:
                continue
            if attempt == 1 and not inserting:
                raise DuplicateError(f"Upsert into {model.__tablename__} kept conflicting on {key}")
            raise


def _country_from_row(row: CountryRow) -> CountryRecord:
    values = _row_values(row, COUNTRY_FIELDS)
    values["data_quality"] = DataQuality(values["data_quality"])
    return CountryRecord(**values)


def _city_from_row(row: CityRow) -> CityRecord:
    values = _row_values(row, CITY_FIELDS)
    values["data_quality"] = DataQuality(values["data_quality"])
    return CityRecord(**values)


def _entry_from_row(row: RequestLogRow) -> RequestLogEntry:
    # SQLite drops tzinfo; the model restores UTC
    return RequestLogEntry(
        entry_id=UUID(row.entry_id),
        timestamp=row.ts,
        endpoint=LookupKind(row.endpoint),
        country_code=row.country_code,
        city_name=row.city_name,
        success=row.success,
        response_time_ms=row.response_time_ms,
        data_source=row.data_source,
        error_message=row.error_message,
    )


class SqlCountryStorage(CountryStorageInterface):

    def __init__(self, database: Database):
        self._db = database

    async def get_country(self, code: str) -> Optional[CountryRecord]:
        def work(session: Session) -> Optional[CountryRecord]:
            row = session.query(CountryRow).filter_by(code=code.upper()).one_or_none()
            return _country_from_row(row) if row else None

        return await self._db.run(work, "Failed to get country")

    async def upsert_country(self, record: CountryRecord) -> CountryRecord:
        values = record.model_dump(exclude={"code"})
        values["data_quality"] = record.data_quality.value

        def work(session: Session) -> CountryRecord:
            return _country_from_row(_upsert(session, CountryRow, {"code": record.code}, values))

        return await self._db.run(work, "Failed to save country")

    async def list_countries(self) -> list[CountryRecord]:
        def work(session: Session) -> list[CountryRecord]:
            rows = session.query(CountryRow).order_by(CountryRow.name.asc()).all()
            return [_country_from_row(row) for row in rows]

        return await self._db.run(work, "Failed to list countries")


class SqlCityStorage(CityStorageInterface):

    def __init__(self, database: Database):
        self._db = database

    async def get_city(self, name: str, country_code: str) -> Optional[CityRecord]:
        def work(session: Session) -> Optional[CityRecord]:
            row = (
                session.query(CityRow)
                .filter_by(name=name.strip(), country_code=country_code.upper())
                .one_or_none()
            )
            return _city_from_row(row) if row else None

        return await self._db.run(work, "Failed to get city")

    async def upsert_city(self, record: CityRecord) -> CityRecord:
        values = record.model_dump(exclude={"name", "country_code"})
        values["data_quality"] = record.data_quality.value
        key = {"name": record.name, "country_code": record.country_code}

        def work(session: Session) -> CityRecord:
            return _city_from_row(_upsert(session, CityRow, key, values))

        return await self._db.run(work, "Failed to save city")

    async def list_cities(self, country_code: str) -> list[CityRecord]:
        def work(session: Session) -> list[CityRecord]:
            rows = (
                session.query(CityRow)
                .filter_by(country_code=country_code.upper())
                .order_by(CityRow.population.is_(None), CityRow.population.desc())
                .all()
            )
            return [_city_from_row(row) for row in rows]

        return await self._db.run(work, "Failed to list cities")


class SqlRequestLogStorage(RequestLogStorageInterface):

    def __init__(self, database: Database):
        self._db = database

    async def append_entry(self, entry: RequestLogEntry) -> bool:
        def work(session: Session) -> bool:
            session.add(RequestLogRow(
                entry_id=str(entry.entry_id),
                ts=entry.timestamp,
                endpoint=entry.endpoint.value,
                country_code=entry.country_code,
                city_name=entry.city_name,
                success=entry.success,
                response_time_ms=entry.response_time_ms,
                data_source=entry.data_source,
                error_message=entry.error_message,
            ))
            session.commit()
            return True

        return await self._db.run(work, "Failed to append request log")

    async def get_recent_entries(self, limit: int = 100) -> list[RequestLogEntry]:
        def work(session: Session) -> list[RequestLogEntry]:
            rows = (
                session.query(RequestLogRow)
                .order_by(RequestLogRow.ts.desc(), RequestLogRow.id.desc())
                .limit(limit)
                .all()
            )
            return [_entry_from_row(row) for row in rows]

        return await self._db.run(work, "Failed to read request log")


class SqlExchangeRateStorage(ExchangeRateStorageInterface):

    def __init__(self, database: Database):
        self._db = database

    async def get_latest_rate(
        self,
        from_currency: str,
        to_currency: str,
        newer_than: datetime,
    ) -> Optional[ExchangeRate]:
        def work(session: Session) -> Optional[ExchangeRate]:
            row = (
                session.query(ExchangeRateRow)
                .filter(
                    ExchangeRateRow.from_currency == from_currency.upper(),
                    ExchangeRateRow.to_currency == to_currency.upper(),
                    ExchangeRateRow.ts >= newer_than,
                )
                .order_by(ExchangeRateRow.ts.desc())
                .first()
            )
            if row is None:
                return None
            return ExchangeRate(
                from_currency=row.from_currency,
                to_currency=row.to_currency,
                rate=row.rate,
                source=row.source,
                timestamp=row.ts,
            )

        return await self._db.run(work, "Failed to get exchange rate")

    async def save_rate(self, rate: ExchangeRate) -> bool:
        def work(session: Session) -> bool:
            session.add(ExchangeRateRow(
                from_currency=rate.from_currency,
                to_currency=rate.to_currency,
                rate=rate.rate,
                source=rate.source,
                ts=rate.timestamp,
            ))
            session.commit()
            return True

        return await self._db.run(work, "Failed to save exchange rate")
