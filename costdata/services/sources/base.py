"""
Data Source Interfaces

A data source answers one question: "what do you know about this key?"
It returns a PARTIAL record (a dict of record field names) or None.

Contract:
- None means "no data" and is not an error; the resolver tries the next source
- Raising means the source is unavailable; the resolver logs it and
  tries the next source
- A source never writes to storage
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from costdata.models.location import CityRecord, CountryRecord


class SourceError(Exception):
    """Base exception for data source errors."""
    pass


class SourceUnavailableError(SourceError):
    """Transport failure, bad status or unreadable payload."""
    pass


class CountrySource(ABC):
    """A provider of country fields."""

    name: str = "unknown"

    @abstractmethod
    async def fetch(
        self,
        country_code: str,
        existing: Optional[CountryRecord] = None,
    ) -> Optional[dict[str, Any]]:
        """
        Fetch fields for a country.

        Args:
            country_code: Upper-case ISO 3166-1 alpha-2 code
            existing: The cached record, if any (stale or fresh)

        Returns:
            Partial record fields, or None when the source has no data

        Raises:
            SourceError: If the source is unavailable
        """
        pass


class CitySource(ABC):
    """A provider of city fields."""

    name: str = "unknown"

    @abstractmethod
    async def fetch(
        self,
        city_name: str,
        country_code: str,
        existing: Optional[CityRecord] = None,
    ) -> Optional[dict[str, Any]]:
        """
        Fetch fields for a city.

        Returns:
            Partial record fields, or None when the source has no data

        Raises:
            SourceError: If the source is unavailable
        """
        pass


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: Optional[dict[str, Any]] = None,
) -> Optional[Any]:
    """
    GET a JSON document.

    Returns None on 404. Raises SourceUnavailableError on transport
    errors, other error statuses and non-JSON bodies.
    """
    try:
        response = await client.get(url, params=params)
    except httpx.HTTPError as e:
        raise SourceUnavailableError(f"GET {url} failed: {e}") from e

    if response.status_code == 404:
        return None
    if response.is_error:
        raise SourceUnavailableError(f"GET {url} returned HTTP {response.status_code}")

    try:
        return response.json()
    except ValueError as e:
        raise SourceUnavailableError(f"GET {url} returned invalid JSON") from e
