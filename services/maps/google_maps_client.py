"""
Google Maps Platform client: geocoding, places and directions.

Google answers most failures with HTTP 200 and a non-OK `status` field; those
payloads are returned as-is and checked by the caller.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from common.constants import GOOGLE_MAPS_BASE_URL
from libs.config import Config
from libs.http_client import UpstreamClient

logger = logging.getLogger(__name__)


class GoogleMapsClient(UpstreamClient):
    """Client for interacting with Google Maps web services."""

    provider = "google-maps"

    def __init__(
        self,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or Config.GOOGLE_MAPS_API_KEY
        if not self.api_key:
            logger.warning(
                "GOOGLE_MAPS_API_KEY not set. Google Maps features will be disabled."
            )
        super().__init__(base_url=GOOGLE_MAPS_BASE_URL, transport=transport)

    def _is_enabled(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request_json("GET", path, params={**params, "key": self.api_key})

    async def geocode(self, address: str) -> Dict[str, Any]:
        logger.info(f"Requesting geocode: address={address!r}")
        return await self._get("/geocode/json", {"address": address})

    async def reverse_geocode(self, lat: float, lng: float) -> Dict[str, Any]:
        logger.info(f"Requesting reverse geocode: ({lat}, {lng})")
        return await self._get("/geocode/json", {"latlng": f"{lat},{lng}"})

    async def nearby_places(
        self, lat: float, lng: float, radius: int, place_type: str
    ) -> Dict[str, Any]:
        logger.info(
            f"Requesting nearby places: ({lat}, {lng}), radius={radius}, type={place_type}"
        )
        return await self._get(
            "/place/nearbysearch/json",
            {"location": f"{lat},{lng}", "radius": radius, "type": place_type},
        )

    async def directions(self, origin: str, destination: str, mode: str) -> Dict[str, Any]:
        logger.info(f"Requesting directions: {origin!r} -> {destination!r}, mode={mode}")
        return await self._get(
            "/directions/json",
            {"origin": origin, "destination": destination, "mode": mode},
        )

    def static_map_url(self, params: Dict[str, Any]) -> str:
        """Static Maps URL for the given parameters; no request is made."""
        query = {k: v for k, v in params.items() if v is not None}
        query["key"] = self.api_key or ""
        return f"{GOOGLE_MAPS_BASE_URL}/staticmap?{urlencode(query)}"


_google_maps_client: Optional[GoogleMapsClient] = None


def get_google_maps_client() -> GoogleMapsClient:
    """Get Google Maps client instance (singleton)."""
    global _google_maps_client
    if _google_maps_client is None:
        _google_maps_client = GoogleMapsClient()
    return _google_maps_client
