"""
Redis caching layer used for rate limiting and listing/search caches.
"""

import json
import logging
from typing import Any, Optional, List

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError
from redis.exceptions import ConnectionError as RedisConnectionError

from .config import get_settings

logger = logging.getLogger(__name__)


class CacheKeyBuilder:
    """Helper class for building consistent cache keys."""

    @staticmethod
    def search_filters() -> str:
        """Build cache key for the search filter options."""
        return "search:filters"

    @staticmethod
    def rate_limit(scope: str, identity: str) -> str:
        """Build cache key for a rate limit window."""
        return f"rate_limit:{scope}:{identity}"


class RedisCache:
    """Redis cache manager with connection handling and operations."""

    def __init__(self):
        self.client: Optional[Redis] = None
        self.pool: Optional[redis.ConnectionPool] = None

    async def initialize(self) -> None:
        """Initialize Redis connection pool and client.

        A missing Redis server is logged and tolerated; the cache then
        behaves as an always-empty store.
        """
        settings = get_settings()

        self.pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_max_connections,
            retry_on_timeout=True,
            socket_keepalive=True,
            health_check_interval=30
        )
        client = Redis(connection_pool=self.pool)

        try:
            await client.ping()
        except (RedisConnectionError, RedisError, OSError) as e:
            logger.warning("Redis unavailable, continuing without cache: %s", e)
            await self.pool.disconnect()
            self.pool = None
            return

        self.client = client
        logger.info("Redis cache initialized successfully")

    async def close(self) -> None:
        """Close Redis connections."""
        if self.client:
            await self.client.close()
            self.client = None
        if self.pool:
            await self.pool.disconnect()
            self.pool = None
        logger.info("Redis cache connections closed")

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        if not self.client:
            return None

        try:
            value = await self.client.get(key)
            if value:
                return json.loads(value.decode('utf-8'))
            return None
        except (RedisError, ValueError) as e:
            logger.warning("Failed to get cache key %s: %s", key, e)
            return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None
    ) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        if not self.client:
            return False

        try:
            serialized_value = json.dumps(value, default=str)
            if ttl:
                await self.client.setex(key, ttl, serialized_value)
            else:
                await self.client.set(key, serialized_value)
            return True
        except (RedisError, TypeError) as e:
            logger.warning("Failed to set cache key %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        if not self.client:
            return False

        try:
            await self.client.delete(key)
            return True
        except RedisError as e:
            logger.warning("Failed to delete cache key %s: %s", key, e)
            return False

    async def zcard(self, key: str) -> int:
        """Get the number of members in a sorted set."""
        if not self.client:
            return 0

        try:
            return await self.client.zcard(key)
        except RedisError as e:
            logger.warning("Failed to zcard key %s: %s", key, e)
            return 0

    async def zrange(self, key: str, start: int, end: int, withscores: bool = False) -> List:
        """Get members from a sorted set by index range."""
        if not self.client:
            return []

        try:
            return await self.client.zrange(key, start, end, withscores=withscores)
        except RedisError as e:
            logger.warning("Failed to zrange key %s: %s", key, e)
            return []

    def pipeline(self):
        """
        Create a Redis pipeline for batch operations.

        Returns:
            Redis pipeline object, or None without a connection
        """
        if not self.client:
            return None

        return self.client.pipeline()


cache = RedisCache()


async def init_cache() -> None:
    """Initialize the global cache instance."""
    await cache.initialize()


async def close_cache() -> None:
    """Close the global cache instance."""
    await cache.close()


def get_cache() -> RedisCache:
    """Get the global cache instance."""
    return cache


class CacheInvalidator:
    """Helper class for cache invalidation strategies."""

    @staticmethod
    async def invalidate_search_caches() -> None:
        """Invalidate caches derived from the set of published listings."""
        await cache.delete(CacheKeyBuilder.search_filters())
        logger.debug("Invalidated search caches")


class CacheTTL:
    """Cache TTL constants for different data types."""

    SEARCH_FILTERS = 900  # 15 minutes
