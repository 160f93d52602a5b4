"""Request dependencies for the catalog routers.

Store clients live on ``app.state`` (created by the lifespan); the
catalog service is built per request around its own session.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.catalog.cache import CacheInvalidator
from app.catalog.indexer import IndexSynchronizer
from app.catalog.service import CatalogService
from app.infrastructure.config import settings
from app.infrastructure.database import async_session_factory, get_session


def get_indexer(request: Request) -> IndexSynchronizer:
    """Get the process-wide index synchronizer."""
    return request.app.state.indexer


def get_cache_invalidator(request: Request) -> CacheInvalidator:
    """Get the process-wide cache invalidator."""
    return request.app.state.cache


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory used for out-of-request snapshots."""
    return async_session_factory


def get_catalog_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    indexer: Annotated[IndexSynchronizer, Depends(get_indexer)],
    cache: Annotated[CacheInvalidator, Depends(get_cache_invalidator)],
) -> CatalogService:
    """Get catalog service bound to the request session."""
    return CatalogService(
        session,
        indexer,
        cache,
        search_max_results=settings.search_max_results,
    )


CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]
CacheDep = Annotated[CacheInvalidator, Depends(get_cache_invalidator)]
IndexerDep = Annotated[IndexSynchronizer, Depends(get_indexer)]

CONSISTENCY_HEADER = "X-Catalog-Consistency"
