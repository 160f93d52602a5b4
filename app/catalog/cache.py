"""Read-through cache invalidation for catalog entries.

Redis is ONLY a cache, never the source of truth. Keys follow the
``<entity>_<slug>`` pattern (e.g. ``product_trail-runner-3000``) and every
entry carries a TTL, which bounds staleness when an invalidation is lost.
"""

import json
from typing import Any

import structlog
from redis import asyncio as aioredis
from redis.exceptions import RedisError

logger = structlog.get_logger()


class CacheInvalidator:
    """Evicts and serves cached catalog payloads keyed by slug.

    Cache failures never propagate: reads degrade to a miss and writes or
    evictions report False after logging.
    """

    def __init__(
        self,
        client: aioredis.Redis,
        ttl_seconds: int = 60,
        entity: str = "product",
    ) -> None:
        """Initialize cache invalidator.

        Args:
            client: Async Redis client.
            ttl_seconds: Lifetime of cached entries.
            entity: Key prefix for the cached entity type.
        """
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.entity = entity

    def key_for(self, slug: str) -> str:
        """Cache key for a slug."""
        return f"{self.entity}_{slug}"

    async def invalidate(self, *slugs: str) -> bool:
        """Evict the entries for the given slugs.

        Args:
            slugs: Slugs whose entries are removed; duplicates are ignored.

        Returns:
            True if the cache acknowledged the eviction, False on failure.
        """
        keys = list(dict.fromkeys(self.key_for(slug) for slug in slugs if slug))
        if not keys:
            return True

        try:
            await self.client.delete(*keys)
        except RedisError as e:
            logger.warning("Cache invalidation failed", keys=keys, error=str(e))
            return False

        logger.debug("Cache entries invalidated", keys=keys)
        return True

    async def get(self, slug: str) -> dict[str, Any] | None:
        """Get a cached payload. Returns None on miss or cache failure."""
        key = self.key_for(slug)
        try:
            cached = await self.client.get(key)
        except RedisError as e:
            logger.warning("Cache read failed", key=key, error=str(e))
            return None

        if cached is None:
            return None
        return json.loads(cached)

    async def set(self, slug: str, payload: dict[str, Any]) -> bool:
        """Cache a payload for ``ttl_seconds``."""
        key = self.key_for(slug)
        try:
            await self.client.set(key, json.dumps(payload), ex=self.ttl_seconds)
        except RedisError as e:
            logger.warning("Cache write failed", key=key, error=str(e))
            return False
        return True
