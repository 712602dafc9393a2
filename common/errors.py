"""
Error taxonomy shared by SafeCity services.

- ValidationError: caller supplied bad input (coordinates, city, radius...).
  Surfaced immediately as HTTP 400, never retried.
- UpstreamUnavailableError: a third-party provider failed or timed out.
  Scoring treats the affected input as absent; proxy endpoints map it to 404/502.
"""

from typing import Optional


class SafeCityError(Exception):
    """Base class for all SafeCity errors."""


class ValidationError(SafeCityError, ValueError):
    """Raised when request input fails validation."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class UpstreamUnavailableError(SafeCityError):
    """Raised when an upstream weather/maps provider cannot serve a request."""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
    ):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404
