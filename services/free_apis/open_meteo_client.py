"""
Open-Meteo API client (forecast + geocoding). No API key required.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from common.constants import OPEN_METEO_BASE_URL, OPEN_METEO_GEOCODING_URL
from libs.http_client import UpstreamClient

logger = logging.getLogger(__name__)

HOURLY_FIELDS = "temperature_2m,relative_humidity_2m,wind_speed_10m,wind_direction_10m"


class OpenMeteoClient(UpstreamClient):
    """Client for Open-Meteo forecast and geocoding APIs."""

    provider = "open-meteo"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(transport=transport)

    async def get_forecast(self, lat: float, lng: float) -> Dict[str, Any]:
        """
        Get current weather plus hourly series for a coordinate.

        Returns:
            Raw Open-Meteo response with `current_weather` and `hourly`
        """
        logger.info(f"Requesting Open-Meteo forecast: ({lat}, {lng})")
        return await self._request_json(
            "GET",
            f"{OPEN_METEO_BASE_URL}/forecast",
            params={
                "latitude": lat,
                "longitude": lng,
                "current_weather": "true",
                "hourly": HOURLY_FIELDS,
            },
        )

    async def search_locations(self, name: str, count: int = 5) -> List[Dict[str, Any]]:
        """
        Geocode a place name.

        Returns:
            List of Open-Meteo geocoding results (empty when nothing matches)
        """
        logger.info(f"Requesting Open-Meteo geocoding: name={name!r}, count={count}")
        data = await self._request_json(
            "GET",
            f"{OPEN_METEO_GEOCODING_URL}/search",
            params={"name": name, "count": count},
        )
        return data.get("results") or []


_open_meteo_client: Optional[OpenMeteoClient] = None


def get_open_meteo_client() -> OpenMeteoClient:
    """Get Open-Meteo client instance (singleton)."""
    global _open_meteo_client
    if _open_meteo_client is None:
        _open_meteo_client = OpenMeteoClient()
    return _open_meteo_client
