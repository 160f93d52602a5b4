"""Tests for cache invalidation."""

import pytest

from app.catalog.cache import CacheInvalidator
from tests.fakes import FakeRedis


class TestCacheInvalidator:
    """Tests for CacheInvalidator."""

    def test_key_pattern(self, cache: CacheInvalidator) -> None:
        """Keys are prefixed with the entity name."""
        assert cache.key_for("trail-runner-3000") == "product_trail-runner-3000"

    @pytest.mark.asyncio
    async def test_set_and_get(self, cache: CacheInvalidator, cache_client: FakeRedis) -> None:
        """Payloads round-trip through JSON with the configured TTL."""
        assert await cache.set("tent", {"id": 1, "slug": "tent"})

        assert await cache.get("tent") == {"id": 1, "slug": "tent"}
        assert cache_client.ttls["product_tent"] == 60

    @pytest.mark.asyncio
    async def test_get_miss(self, cache: CacheInvalidator) -> None:
        """Absent keys read as None."""
        assert await cache.get("nothing") is None

    @pytest.mark.asyncio
    async def test_invalidate_removes_entries(
        self, cache: CacheInvalidator, cache_client: FakeRedis
    ) -> None:
        """Every named slug is evicted."""
        await cache.set("old-slug", {"id": 1})
        await cache.set("new-slug", {"id": 1})
        await cache.set("other", {"id": 2})

        assert await cache.invalidate("old-slug", "new-slug")

        assert set(cache_client.store) == {"product_other"}

    @pytest.mark.asyncio
    async def test_invalidate_absent_key(self, cache: CacheInvalidator) -> None:
        """Evicting a key that is not cached succeeds."""
        assert await cache.invalidate("never-cached") is True

    @pytest.mark.asyncio
    async def test_invalidate_nothing(self, cache: CacheInvalidator) -> None:
        """No slugs means nothing to do."""
        assert await cache.invalidate() is True

    @pytest.mark.asyncio
    async def test_failures_degrade(self, cache: CacheInvalidator, cache_client: FakeRedis) -> None:
        """Cache outages never raise: reads miss, writes report False."""
        cache_client.fail = True

        assert await cache.get("tent") is None
        assert await cache.set("tent", {"id": 1}) is False
        assert await cache.invalidate("tent") is False
