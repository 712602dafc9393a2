"""
Base class for third-party API clients (weather, maps, geocoding).
Wraps an httpx AsyncClient and turns transport/status failures into
UpstreamUnavailableError.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from httpx import AsyncClient, Timeout

from common.constants import UPSTREAM_TIMEOUT
from common.errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)


class UpstreamClient:
    """Async JSON client for one upstream provider."""

    provider = "upstream"

    def __init__(
        self,
        base_url: str = "",
        headers: Optional[Dict[str, str]] = None,
        timeout: float = UPSTREAM_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Provider base URL
            headers: Default headers sent on every request
            timeout: Request timeout in seconds
            transport: Custom transport (httpx.MockTransport in tests)
        """
        self.client = AsyncClient(
            base_url=base_url,
            timeout=Timeout(timeout),
            headers=headers or {},
            transport=transport,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def _request_json(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        content: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Send a request and decode the JSON body.

        Raises:
            UpstreamUnavailableError: On timeout, connection error, non-2xx status
                or undecodable body
        """
        try:
            response = await self.client.request(
                method, url, params=params, content=content, headers=headers
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"{self.provider} API error: {e.response.status_code} - {e.response.text}"
            )
            raise UpstreamUnavailableError(
                self.provider,
                f"HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            )
        except httpx.RequestError as e:
            logger.error(f"{self.provider} request error: {e}")
            raise UpstreamUnavailableError(self.provider, str(e) or type(e).__name__)
        except ValueError as e:
            logger.error(f"{self.provider} returned invalid JSON: {e}")
            raise UpstreamUnavailableError(self.provider, "invalid JSON response")
