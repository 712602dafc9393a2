"""
TTL cache abstraction for proxied upstream responses.

Caches are created per service and handed to endpoints through FastAPI
dependencies, so tests can swap them out. Values must be JSON-compatible.
Concurrent writers are not coordinated; the last write for a key wins.
"""

import copy
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Tuple

import cachetools

from libs.config import Config
from libs.redis_client import RedisClient, get_redis_client

logger = logging.getLogger(__name__)


def cache_key(prefix: str, *parts: Any) -> str:
    """
    Build a deterministic cache key from request parameters.

    Example:
        cache_key("risk_zones", 40.7, None, 5000) -> "risk_zones_40.7_all_5000"
    """
    return "_".join([prefix] + ["all" if p is None else str(p) for p in parts])


def _time_to_use(key: str, entry: Tuple[int, Any], now: float) -> float:
    return now + entry[0]


class TTLCache(ABC):
    """Key-value store whose entries expire after a fixed time window."""

    def __init__(self, default_ttl: int):
        self.default_ttl = default_ttl

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the cached value or None when missing/expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store value for ttl seconds (default_ttl when None)."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Drop key if present."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry."""


class MemoryTTLCache(TTLCache):
    """
    In-process TTL cache backed by cachetools.TLRUCache.

    Each entry carries its own expiry, so per-call ttl overrides work. Expired
    entries are purged on every write, and the least recently used entry is
    evicted once maxsize is reached.
    """

    def __init__(
        self,
        default_ttl: int,
        clock: Callable[[], float] = time.monotonic,
        maxsize: Optional[int] = None,
    ):
        super().__init__(default_ttl)
        self._entries = cachetools.TLRUCache(
            maxsize=maxsize or Config.MEMORY_CACHE_MAXSIZE,
            ttu=_time_to_use,
            timer=clock,
        )

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        # Callers decorate cached payloads; hand out a copy
        return copy.deepcopy(entry[1])

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = (ttl, copy.deepcopy(value))

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        self._entries.expire()
        return len(self._entries)


class RedisTTLCache(TTLCache):
    """TTL cache backed by Redis SETEX. Redis errors behave like misses."""

    def __init__(
        self,
        namespace: str,
        default_ttl: int,
        client: Optional[RedisClient] = None,
    ):
        super().__init__(default_ttl)
        self.namespace = namespace
        self._client = client or get_redis_client()

    def _key(self, key: str) -> str:
        return f"safecity:{self.namespace}:{key}"

    def get(self, key: str) -> Optional[Any]:
        return self._client.get_json(self._key(key))

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        if not self._client.set_json(self._key(key), value, ttl):
            logger.warning(f"Failed to cache key {key} in namespace {self.namespace}")

    def delete(self, key: str) -> None:
        self._client.delete(self._key(key))

    def clear(self) -> None:
        self._client.delete_prefix(f"safecity:{self.namespace}:")


def build_cache(namespace: str, default_ttl: int) -> TTLCache:
    """
    Create the cache backend selected by Config.CACHE_BACKEND.

    Args:
        namespace: Service namespace (prefixes Redis keys)
        default_ttl: Default TTL in seconds

    Returns:
        MemoryTTLCache (default) or RedisTTLCache
    """
    backend = Config.CACHE_BACKEND.lower()
    if backend == "redis":
        logger.info(f"Using Redis cache for {namespace} (ttl={default_ttl}s)")
        return RedisTTLCache(namespace, default_ttl)
    if backend != "memory":
        logger.warning(f"Unknown CACHE_BACKEND '{backend}', falling back to memory")
    return MemoryTTLCache(default_ttl)
