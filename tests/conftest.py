"""Shared fixtures: in-memory database, fake stores and an API client.

Every test gets a fresh SQLite database (through aiosqlite) as the
system of record, and dict-backed fakes for the search index and cache.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.dependencies import get_cache_invalidator, get_indexer, get_session_factory
from app.catalog import models  # noqa: F401  (registers tables on Base.metadata)
from app.catalog.cache import CacheInvalidator
from app.catalog.indexer import IndexSynchronizer
from app.catalog.service import CatalogService
from app.infrastructure.database import Base, get_session
from app.main import app
from tests.fakes import FakeElasticsearch, FakeRedis


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database with the catalog schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Database session for a single test."""
    async with session_factory() as session:
        yield session


# ============================================================================
# Store Fixtures
# ============================================================================


@pytest.fixture
def search_client() -> FakeElasticsearch:
    """Dict-backed search index client."""
    return FakeElasticsearch()


@pytest.fixture
def cache_client() -> FakeRedis:
    """Dict-backed cache client."""
    return FakeRedis()


@pytest_asyncio.fixture
async def indexer(search_client: FakeElasticsearch) -> IndexSynchronizer:
    """Index synchronizer with the index created and open for search."""
    indexer = IndexSynchronizer(search_client, "products")
    await indexer.ensure_index()
    indexer.mark_ready()
    return indexer


@pytest.fixture
def cache(cache_client: FakeRedis) -> CacheInvalidator:
    """Cache invalidator over the fake cache."""
    return CacheInvalidator(cache_client, ttl_seconds=60)


@pytest.fixture
def service(
    session: AsyncSession,
    indexer: IndexSynchronizer,
    cache: CacheInvalidator,
) -> CatalogService:
    """Catalog service wired to the test database and fake stores."""
    return CatalogService(session, indexer, cache)


# ============================================================================
# API Client Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    indexer: IndexSynchronizer,
    cache: CacheInvalidator,
) -> AsyncGenerator[AsyncClient, None]:
    """API client with the database and stores overridden."""

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_indexer] = lambda: indexer
    app.dependency_overrides[get_cache_invalidator] = lambda: cache
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Request-ID": "test-request"},
    ) as c:
        yield c

    app.dependency_overrides.clear()
