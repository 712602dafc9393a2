"""
Redis connection client for SafeCity response caching.
Only constructed when CACHE_BACKEND=redis; degrades to cache misses when Redis is down.
"""

import json
import logging
from typing import Any, Optional

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from libs.config import Config

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis client wrapper with graceful degradation."""

    _instance: Optional["RedisClient"] = None

    def __init__(self, client: Optional[redis.Redis] = None):
        """
        Initialize Redis connection from Config.

        Args:
            client: Pre-built redis.Redis (used by tests); built from Config if None
        """
        if client is not None:
            self._client = client
            return

        connection_kwargs = {
            "host": Config.REDIS_HOST,
            "port": Config.REDIS_PORT,
            "db": Config.REDIS_DB,
            "decode_responses": True,
            "socket_connect_timeout": 5,
            "socket_timeout": 5,
            "retry_on_timeout": True,
            "health_check_interval": 30,
        }
        if Config.REDIS_PASSWORD:
            connection_kwargs["password"] = Config.REDIS_PASSWORD.strip()

        self._client = redis.Redis(**connection_kwargs)
        try:
            self._client.ping()
            logger.info(
                f"Redis connected: host={Config.REDIS_HOST}, port={Config.REDIS_PORT}, "
                f"db={Config.REDIS_DB}"
            )
        except (RedisConnectionError, RedisError) as e:
            # Run without a cache; every lookup misses
            logger.error(f"Redis connection failed: {e}")

    @classmethod
    def get_instance(cls) -> "RedisClient":
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def client(self) -> redis.Redis:
        return self._client

    def is_connected(self) -> bool:
        try:
            return bool(self._client.ping())
        except (RedisConnectionError, RedisError):
            return False

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(key)
        except (RedisConnectionError, RedisError) as e:
            logger.error(f"Redis GET error for key {key}: {e}")
            return None

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        """Set value in Redis with optional TTL."""
        try:
            if ttl:
                return bool(self._client.setex(key, ttl, value))
            return bool(self._client.set(key, value))
        except (RedisConnectionError, RedisError) as e:
            logger.error(f"Redis SET error for key {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        try:
            return bool(self._client.delete(key))
        except (RedisConnectionError, RedisError) as e:
            logger.error(f"Redis DELETE error for key {key}: {e}")
            return False

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix. Returns number of keys removed."""
        removed = 0
        try:
            for key in self._client.scan_iter(match=f"{prefix}*"):
                removed += self._client.delete(key)
        except (RedisConnectionError, RedisError) as e:
            logger.error(f"Redis SCAN/DELETE error for prefix {prefix}: {e}")
        return removed

    def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set JSON value in Redis."""
        try:
            json_str = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"JSON serialization error for key {key}: {e}")
            return False
        return self.set(key, json_str, ttl)

    def get_json(self, key: str) -> Optional[Any]:
        """Get JSON value from Redis."""
        json_str = self.get(key)
        if json_str is None:
            return None
        try:
            return json.loads(json_str)
        except (TypeError, ValueError) as e:
            logger.error(f"JSON deserialization error for key {key}: {e}")
            return None


def get_redis_client() -> RedisClient:
    """Get Redis client instance."""
    return RedisClient.get_instance()
