"""
Location Data Models

Cached country and city records. These are the unit of storage AND the
payload returned to callers.

DESIGN DECISION: Python attributes are snake_case, JSON on the wire is
camelCase. Records are built with field names and dumped with
`by_alias=True` at the HTTP boundary.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class DataQuality(str, Enum):
    """How much to trust a cached record."""
    VERIFIED = "verified"
    ESTIMATED = "estimated"
    OUTDATED = "outdated"


class LookupKind(str, Enum):
    """Which resolver operation produced a request log entry."""
    COUNTRY = "country"
    CITY = "city"


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class CountryRecord(CamelModel):
    """
    Cached economic data for one country.

    Keyed by ISO 3166-1 alpha-2 code. At most one record per code.
    """

    # Identity
    code: str = Field(..., min_length=2, max_length=2)
    name: str = Field(..., min_length=1, max_length=200)

    # Currency
    currency: str = Field(default="USD", min_length=3, max_length=3)
    currency_symbol: str = Field(default="$", max_length=10)
    exchange_rate_to_usd: float = Field(default=1.0, gt=0, alias="exchangeRateToUSD")
    exchange_rate_to_eur: float = Field(default=1.0, gt=0, alias="exchangeRateToEUR")

    # Cost indices (US = 100)
    cost_of_living_index: Optional[float] = Field(default=None, ge=0)
    rent_index: Optional[float] = Field(default=None, ge=0)
    groceries_index: Optional[float] = Field(default=None, ge=0)
    restaurant_price_index: Optional[float] = Field(default=None, ge=0)
    local_purchasing_power: Optional[float] = Field(default=None, ge=0)
    average_salary: Optional[float] = Field(
        default=None,
        ge=0,
        description="Average monthly salary in local currency"
    )

    # Provenance
    data_source: str = Field(default="unknown", max_length=100)
    data_quality: DataQuality = Field(default=DataQuality.ESTIMATED)
    last_fetched_at: datetime = Field(default_factory=utc_now)

    @field_validator("code", "currency")
    @classmethod
    def uppercase_codes(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("last_fetched_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # SQLite hands back naive datetimes
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_summary(self) -> "CountrySummary":
        return CountrySummary(code=self.code, name=self.name)


class CityRecord(CamelModel):
    """
    Cached cost multipliers and averages for one city.

    Keyed by (name, country_code). Multipliers are relative to the
    country average, so 1.0 means "same as the rest of the country".
    """

    # Identity
    name: str = Field(..., min_length=1, max_length=200)
    country_code: str = Field(..., min_length=2, max_length=2)

    # Geography
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    population: Optional[int] = Field(default=None, ge=0)

    # Multipliers
    housing_multiplier: float = Field(default=1.0, gt=0)
    food_multiplier: float = Field(default=1.0, gt=0)
    transport_multiplier: float = Field(default=1.0, gt=0)
    utilities_multiplier: float = Field(default=1.0, gt=0)
    entertainment_multiplier: float = Field(default=1.0, gt=0)

    # Average prices (local currency)
    avg_rent_studio: Optional[float] = Field(default=None, ge=0)
    avg_rent_1_bedroom: Optional[float] = Field(default=None, ge=0, alias="avgRent1Bedroom")
    avg_rent_3_bedroom: Optional[float] = Field(default=None, ge=0, alias="avgRent3Bedroom")
    avg_meal_inexpensive: Optional[float] = Field(default=None, ge=0)
    avg_meal_mid_range: Optional[float] = Field(default=None, ge=0)
    avg_transport_pass: Optional[float] = Field(default=None, ge=0)
    avg_utilities: Optional[float] = Field(default=None, ge=0)
    avg_internet: Optional[float] = Field(default=None, ge=0)
    avg_gym_membership: Optional[float] = Field(default=None, ge=0)

    # Provenance
    data_source: str = Field(default="unknown", max_length=100)
    data_quality: DataQuality = Field(default=DataQuality.ESTIMATED)
    last_fetched_at: datetime = Field(default_factory=utc_now)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("country_code")
    @classmethod
    def uppercase_country(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("last_fetched_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_summary(self) -> "CitySummary":
        return CitySummary(name=self.name, population=self.population)


class CountrySummary(CamelModel):
    """Projection used by the country listing."""
    code: str
    name: str


class CitySummary(CamelModel):
    """Projection used by the city listing."""
    name: str
    population: Optional[int] = None


class ExchangeRate(CamelModel):
    """One observed exchange rate: 1 unit of `from_currency` = `rate` units of `to_currency`."""

    from_currency: str = Field(..., min_length=3, max_length=3, alias="from")
    to_currency: str = Field(..., min_length=3, max_length=3, alias="to")
    rate: float = Field(..., gt=0)
    source: str = Field(default="unknown", max_length=100)
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("from_currency", "to_currency")
    @classmethod
    def uppercase(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v
