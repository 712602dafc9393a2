"""
OpenStreetMap clients: Nominatim (reverse geocoding) and Overpass (nearby places).
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from common.constants import NOMINATIM_BASE_URL, NOMINATIM_USER_AGENT, OVERPASS_URL
from libs.http_client import UpstreamClient

logger = logging.getLogger(__name__)


class NominatimClient(UpstreamClient):
    """Client for the Nominatim reverse geocoding API."""

    provider = "nominatim"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(
            base_url=NOMINATIM_BASE_URL,
            headers={"User-Agent": NOMINATIM_USER_AGENT},
            transport=transport,
        )

    async def reverse(self, lat: float, lng: float) -> Dict[str, Any]:
        logger.info(f"Requesting Nominatim reverse geocode: ({lat}, {lng})")
        return await self._request_json(
            "GET",
            "/reverse",
            params={"format": "json", "lat": lat, "lon": lng, "addressdetails": 1},
        )


def build_overpass_query(lat: float, lng: float, radius: int, tag: str) -> str:
    """Overpass QL for nodes/ways/relations carrying `tag` within radius meters."""
    around = f"(around:{radius},{lat},{lng})"
    return (
        "[out:json][timeout:25];\n"
        "(\n"
        f'  node["{tag}"]{around};\n'
        f'  way["{tag}"]{around};\n'
        f'  relation["{tag}"]{around};\n'
        ");\n"
        "out center meta;\n"
    )


class OverpassClient(UpstreamClient):
    """Client for the Overpass API interpreter."""

    provider = "overpass"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(transport=transport, timeout=30.0)

    async def find_nearby(
        self, lat: float, lng: float, radius: int, tag: str
    ) -> List[Dict[str, Any]]:
        """
        Find OSM elements tagged `tag` around a point.

        Returns:
            Raw Overpass `elements` list
        """
        query = build_overpass_query(lat, lng, radius, tag)
        logger.info(f"Requesting Overpass: ({lat}, {lng}), radius={radius}, tag={tag}")
        data = await self._request_json(
            "POST",
            OVERPASS_URL,
            content=query,
            headers={"Content-Type": "text/plain"},
        )
        return data.get("elements") or []


_nominatim_client: Optional[NominatimClient] = None
_overpass_client: Optional[OverpassClient] = None


def get_nominatim_client() -> NominatimClient:
    global _nominatim_client
    if _nominatim_client is None:
        _nominatim_client = NominatimClient()
    return _nominatim_client


def get_overpass_client() -> OverpassClient:
    global _overpass_client
    if _overpass_client is None:
        _overpass_client = OverpassClient()
    return _overpass_client
