"""
Shared test fixtures.

This module provides reusable fixtures for:
- In-memory caches driven by a controllable clock
- Deterministic random sources for prediction and traffic simulation
- A fixed "now" for time-of-day dependent scoring
"""

from datetime import datetime

import pytest

from libs.cache import MemoryTTLCache


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def memory_cache(fake_clock):
    """Empty in-memory cache with a 300 s default TTL."""
    return MemoryTTLCache(default_ttl=300, clock=fake_clock)


@pytest.fixture
def neutral_random():
    """Random source that always sits at the midpoint (zero perturbation)."""
    return lambda: 0.5


@pytest.fixture
def sequence_random():
    """Factory for random sources that replay the given values in order."""

    def make(*values):
        it = iter(values)
        return lambda: next(it)

    return make


@pytest.fixture
def fixed_now():
    """Wednesday 2025-01-15 08:00 local time."""
    return datetime(2025, 1, 15, 8, 0, 0)
