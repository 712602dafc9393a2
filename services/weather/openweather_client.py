"""
OpenWeatherMap API client for SafeCity backend.
Covers current weather, 5-day forecast, One Call alerts/history and air pollution.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from libs.config import Config
from libs.http_client import UpstreamClient

logger = logging.getLogger(__name__)


class OpenWeatherClient(UpstreamClient):
    """Client for interacting with the OpenWeatherMap API."""

    provider = "openweathermap"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize OpenWeatherMap client.

        Args:
            api_key: API key. If None, reads Config.OPENWEATHER_API_KEY.
            base_url: 2.5 API base URL. If None, reads Config.OPENWEATHER_BASE_URL.
            transport: Custom httpx transport (tests)
        """
        self.api_key = api_key or Config.OPENWEATHER_API_KEY
        self.base_url = (base_url or Config.OPENWEATHER_BASE_URL).rstrip("/")
        # One Call endpoints live under /data/3.0
        self.onecall_url = self.base_url.replace("/data/2.5", "/data/3.0")
        if not self.api_key:
            logger.warning(
                "OPENWEATHER_API_KEY not set. OpenWeatherMap features will be disabled."
            )
        super().__init__(transport=transport)

    def _is_enabled(self) -> bool:
        return bool(self.api_key)

    async def _get(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request_json("GET", url, params={**params, "appid": self.api_key})

    async def get_current(self, location: Dict[str, Any], units: str = "metric"):
        """
        Current weather.

        Args:
            location: {"lat": .., "lon": ..} or {"q": city}
            units: metric | imperial | standard
        """
        logger.info(f"Requesting current weather: {location}, units={units}")
        return await self._get(f"{self.base_url}/weather", {**location, "units": units})

    async def get_forecast(self, location: Dict[str, Any], units: str = "metric"):
        """5 day / 3 hour forecast."""
        logger.info(f"Requesting forecast: {location}, units={units}")
        return await self._get(f"{self.base_url}/forecast", {**location, "units": units})

    async def get_onecall(self, location: Dict[str, Any]):
        """One Call 3.0 (used for alerts)."""
        logger.info(f"Requesting One Call: {location}")
        return await self._get(f"{self.onecall_url}/onecall", location)

    async def get_timemachine(self, lat: float, lng: float, dt: int, units: str = "metric"):
        """One Call 3.0 historical data for a unix timestamp."""
        logger.info(f"Requesting historical weather: ({lat}, {lng}), dt={dt}")
        return await self._get(
            f"{self.onecall_url}/onecall/timemachine",
            {"lat": lat, "lon": lng, "dt": dt, "units": units},
        )

    async def get_air_pollution(self, lat: float, lng: float):
        logger.info(f"Requesting air pollution: ({lat}, {lng})")
        return await self._get(f"{self.base_url}/air_pollution", {"lat": lat, "lon": lng})


_openweather_client: Optional[OpenWeatherClient] = None


def get_openweather_client() -> OpenWeatherClient:
    """Get OpenWeatherMap client instance (singleton)."""
    global _openweather_client
    if _openweather_client is None:
        _openweather_client = OpenWeatherClient()
    return _openweather_client
