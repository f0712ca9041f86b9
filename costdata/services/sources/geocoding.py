"""
Open-Meteo Geocoding Source

Coordinates and population for a city. Free, no API key.
Only a result located in the requested country counts as a match.
"""

from typing import Any, Optional

import httpx

from costdata.models.location import CityRecord, DataQuality
from costdata.services.sources.base import CitySource, get_json


class OpenMeteoGeocodingSource(CitySource):

    name = "open-meteo"

    def __init__(self, client: httpx.AsyncClient, url: str, max_results: int = 10):
        self._client = client
        self._url = url
        self._max_results = max_results

    async def fetch(
        self,
        city_name: str,
        country_code: str,
        existing: Optional[CityRecord] = None,
    ) -> Optional[dict[str, Any]]:
        payload = await get_json(
            self._client,
            self._url,
            params={
                "name": city_name,
                "count": self._max_results,
                "language": "en",
                "format": "json",
            },
        )
        if not isinstance(payload, dict):
            return None

        for result in payload.get("results") or []:
            if (result.get("country_code") or "").upper() != country_code:
                continue
            return {
                "latitude": result.get("latitude"),
                "longitude": result.get("longitude"),
                "population": result.get("population"),
                "data_source": self.name,
                "data_quality": DataQuality.VERIFIED,
            }

        return None
