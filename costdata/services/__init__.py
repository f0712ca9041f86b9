"""Services package."""

from costdata.services.sources import (
    CityEstimator,
    CitySource,
    CountryEstimator,
    CountrySource,
    ExchangeRateSource,
    OpenMeteoGeocodingSource,
    RestCountriesSource,
    SourceError,
    SourceUnavailableError,
)
from costdata.services.storage import (
    CityStorageInterface,
    CountryStorageInterface,
    Database,
    ExchangeRateStorageInterface,
    RequestLogStorageInterface,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Data sources
    "CityEstimator",
    "CitySource",
    "CountryEstimator",
    "CountrySource",
    "ExchangeRateSource",
    "OpenMeteoGeocodingSource",
    "RestCountriesSource",
    "SourceError",
    "SourceUnavailableError",
    # Storage services
    "CityStorageInterface",
    "CountryStorageInterface",
    "Database",
    "ExchangeRateStorageInterface",
    "RequestLogStorageInterface",
    "StorageConnectionError",
    "StorageError",
]
