"""
Redis cache layer.

Provides:
- Generic get/set/delete cache operations
- TTL management
- Cache key namespacing
- JSON serialization

Every operation fails gracefully: a broken cache degrades to a miss,
it never breaks a request.
"""

import json
import logging
import time
from typing import Any

import redis.asyncio as aioredis

from opsportal.config import settings
from opsportal.core.metrics import cache_operation_duration_seconds, cache_operations_total

logger = logging.getLogger(__name__)


class CacheManager:
    """
    Redis-based cache manager.

    Handles:
    - Connection lifecycle
    - Serialization/deserialization
    - Key namespacing
    """

    def __init__(self) -> None:
        self._client: aioredis.Redis | None = None

    async def init(self) -> None:
        """Initialize Redis connection pool."""
        logger.info("Initializing Redis connection...")

        self._client = aioredis.from_url(
            str(settings.redis_url),
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
        )

        await self._client.ping()
        logger.info("Redis connection initialized")

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            logger.info("Redis connection closed")

    @property
    def client(self) -> aioredis.Redis:
        """Get Redis client."""
        if not self._client:
            raise RuntimeError("Cache not initialized. Call init() first.")
        return self._client

    def _build_key(self, namespace: str, key: str) -> str:
        """
        Build namespaced cache key.

        Format: opsportal:{namespace}:{key}
        Example: opsportal:tenant_resolution:acme.example.com
        """
        return f"opsportal:{namespace}:{key}"

    async def get(self, namespace: str, key: str) -> Any | None:
        """
        Get value from cache.

        Returns:
            Deserialized value or None if not found
        """
        cache_key = self._build_key(namespace, key)
        start = time.perf_counter()

        try:
            value = await self.client.get(cache_key)
        except Exception as e:
            logger.warning(f"Cache get error: {cache_key} - {e}")
            return None
        finally:
            cache_operation_duration_seconds.labels(operation="get").observe(
                time.perf_counter() - start
            )

        cache_operations_total.labels(operation="get", hit=str(value is not None)).inc()
        if value is None:
            return None

        try:
            return json.loads(value)
        except ValueError:
            logger.warning(f"Cache value is not valid JSON: {cache_key}")
            return None

    async def set(
        self,
        namespace: str,
        key: str,
        value: Any,
        ttl: int | None = None,
    ) -> bool:
        """
        Set value in cache.

        Args:
            namespace: Cache namespace
            key: Cache key
            value: Value to cache (must be JSON-serializable)
            ttl: Time-to-live in seconds (None = use default)

        Returns:
            True if set successfully
        """
        cache_key = self._build_key(namespace, key)
        ttl = ttl or settings.redis_cache_ttl

        try:
            serialized = json.dumps(value, default=str)
            await self.client.set(cache_key, serialized, ex=ttl)
            cache_operations_total.labels(operation="set", hit="n/a").inc()
            return True

        except Exception as e:
            logger.warning(f"Cache set error: {cache_key} - {e}")
            return False

    async def delete(self, namespace: str, key: str) -> bool:
        """Delete specific cache entry."""
        cache_key = self._build_key(namespace, key)

        try:
            result = await self.client.delete(cache_key)
            cache_operations_total.labels(operation="delete", hit="n/a").inc()
            return result > 0

        except Exception as e:
            logger.warning(f"Cache delete error: {cache_key} - {e}")
            return False

    async def invalidate_namespace(self, namespace: str) -> int:
        """
        Invalidate all keys in a namespace.

        Returns:
            Number of keys deleted
        """
        pattern = self._build_key(namespace, "*")

        try:
            keys = [key async for key in self.client.scan_iter(match=pattern)]

            if keys:
                deleted = await self.client.delete(*keys)
                logger.info(f"Invalidated {deleted} keys in namespace: {namespace}")
                return deleted

            return 0

        except Exception as e:
            logger.warning(f"Cache invalidate error: {namespace} - {e}")
            return 0


# Global instance
cache_manager = CacheManager()


def get_cache() -> CacheManager:
    """FastAPI dependency for the cache (overridden in tests)."""
    return cache_manager
