"""Store client factories.

Builds the Elasticsearch and Redis clients used by the catalog core.
Both are created once per process (in the application lifespan) and
closed on shutdown.
"""

import structlog
from elasticsearch import AsyncElasticsearch
from redis import asyncio as aioredis

from app.infrastructure.config import settings

logger = structlog.get_logger()


def create_search_client() -> AsyncElasticsearch:
    """Create the async Elasticsearch client.

    Returns:
        Client configured with request timeout and retries.
    """
    logger.info(
        "Creating search client",
        url=settings.elasticsearch_url,
        index=settings.elasticsearch_index,
    )
    return AsyncElasticsearch(
        settings.elasticsearch_url,
        request_timeout=settings.elasticsearch_timeout,
        max_retries=settings.elasticsearch_max_retries,
        retry_on_timeout=True,
    )


def create_cache_client() -> aioredis.Redis:
    """Create the async Redis client.

    Returns:
        Client decoding responses to ``str`` with socket timeouts set.
    """
    logger.info("Creating cache client", url=settings.redis_url)
    return aioredis.Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=settings.redis_timeout,
        socket_timeout=settings.redis_timeout,
    )
