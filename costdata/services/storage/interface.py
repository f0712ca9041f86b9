"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run against SQLite locally and PostgreSQL in production
2. Use in-memory storage for testing
3. Keep resolver logic decoupled from storage implementation

Upserts are keyed by the natural key (country code, or city name +
country code). Implementations must guarantee at most one record per key.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from costdata.models.audit import RequestLogEntry
from costdata.models.location import CityRecord, CountryRecord, ExchangeRate


class CountryStorageInterface(ABC):
    """Cached country records."""

    @abstractmethod
    async def get_country(self, code: str) -> Optional[CountryRecord]:
        """
        Retrieve a country by its code.

        Returns:
            The record if cached, None otherwise

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def upsert_country(self, record: CountryRecord) -> CountryRecord:
        """
        Insert or update the record for `record.code`.

        Returns:
            The record as stored

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_countries(self) -> list[CountryRecord]:
        """All cached countries ordered by name ascending."""
        pass


class CityStorageInterface(ABC):
    """Cached city records."""

    @abstractmethod
    async def get_city(self, name: str, country_code: str) -> Optional[CityRecord]:
        """
        Retrieve a city by (name, country code).

        Returns:
            The record if cached, None otherwise

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def upsert_city(self, record: CityRecord) -> CityRecord:
        """
        Insert or update the record for (`record.name`, `record.country_code`).

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_cities(self, country_code: str) -> list[CityRecord]:
        """
        Cached cities of one country, largest population first.

        Cities with unknown population sort last.
        """
        pass


class RequestLogStorageInterface(ABC):
    """
    Request log storage.

    Request logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_entry(self, entry: RequestLogEntry) -> bool:
        """
        Append a request log entry.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_entries(self, limit: int = 100) -> list[RequestLogEntry]:
        """Most recent entries, newest first."""
        pass


class ExchangeRateStorageInterface(ABC):
    """Observed exchange rates (append-only history)."""

    @abstractmethod
    async def get_latest_rate(
        self,
        from_currency: str,
        to_currency: str,
        newer_than: datetime,
    ) -> Optional[ExchangeRate]:
        """
        Newest stored rate for the pair observed after `newer_than`.

        Returns:
            The rate if one is fresh enough, None otherwise
        """
        pass

    @abstractmethod
    async def save_rate(self, rate: ExchangeRate) -> bool:
        """Append an observed rate."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Concurrent writers kept colliding on the same natural key."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
