"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
SQLAlchemy backs production; the in-memory stores back tests.
"""

from costdata.services.storage.interface import (
    CityStorageInterface,
    CountryStorageInterface,
    DuplicateError,
    ExchangeRateStorageInterface,
    RequestLogStorageInterface,
    StorageConnectionError,
    StorageError,
)
from costdata.services.storage.memory import (
    InMemoryCityStorage,
    InMemoryCountryStorage,
    InMemoryExchangeRateStorage,
    InMemoryRequestLogStorage,
)
from costdata.services.storage.sql import (
    Database,
    SqlCityStorage,
    SqlCountryStorage,
    SqlExchangeRateStorage,
    SqlRequestLogStorage,
)

__all__ = [
    # Interfaces
    "CityStorageInterface",
    "CountryStorageInterface",
    "ExchangeRateStorageInterface",
    "RequestLogStorageInterface",
    # Exceptions
    "DuplicateError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryCityStorage",
    "InMemoryCountryStorage",
    "InMemoryExchangeRateStorage",
    "InMemoryRequestLogStorage",
    # SQLAlchemy implementation
    "Database",
    "SqlCityStorage",
    "SqlCountryStorage",
    "SqlExchangeRateStorage",
    "SqlRequestLogStorage",
]
