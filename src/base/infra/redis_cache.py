import json
import logging
import os
from typing import Any

from redis.asyncio import Redis

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60


def get_cache_ttl() -> int:
    """TTL of cached entries from USER_CACHE_TTL_SECONDS."""
    try:
        return int(os.getenv("USER_CACHE_TTL_SECONDS", DEFAULT_TTL_SECONDS))
    except ValueError:
        logger.warning("Invalid USER_CACHE_TTL_SECONDS, using %d", DEFAULT_TTL_SECONDS)
        return DEFAULT_TTL_SECONDS


class RedisCache:
    """Thin wrapper around redis.asyncio.Redis providing safe cache operations.

    All methods are no-ops when Redis is None (graceful degradation).
    All methods catch exceptions and log warnings.
    """

    def __init__(self, redis_client: Redis | None = None, ttl: int | None = None):
        self._redis = redis_client
        self._ttl = ttl if ttl is not None else get_cache_ttl()

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    async def get_json(self, key: str) -> Any | None:
        if not self._redis:
            return None
        try:
            value = await self._redis.get(key)
        except Exception:
            logger.warning("Redis cache read failed for %s", key, exc_info=True)
            return None
        if value is None:
            return None
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    async def set_json(self, key: str, value: Any) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value), ex=self._ttl)
        except Exception:
            logger.warning("Redis cache write failed for %s", key, exc_info=True)

    async def invalidate(self, *keys: str) -> None:
        """Drop the given entries; failures are logged, never raised."""
        if not self._redis or not keys:
            return
        try:
            await self._redis.delete(*keys)
            logger.debug("Invalidated cache entries %s", ", ".join(keys))
        except Exception:
            logger.warning("Redis cache delete failed for %s", keys, exc_info=True)
