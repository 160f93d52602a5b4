"""Search index rebuild and bootstrap.

A rebuild snapshots every product from the system of record, bulk-loads
the snapshot and prunes documents whose products no longer exist. It is
idempotent and safe to run next to live writes: documents are versioned,
so a live upsert made after the snapshot is never overwritten by the
snapshot's older copy, and pruning decides on a fresh read of the
product table taken after the bulk load.
"""

import asyncio
from dataclasses import dataclass

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.catalog.indexer import IndexSynchronizer, SearchDocument
from app.catalog.repository import ProductRepository
from app.domain.exceptions import DependencyUnavailableError

logger = structlog.get_logger()

# Failures that may clear up while the stores are still starting
BOOTSTRAP_RETRY_ERRORS = (DependencyUnavailableError, SQLAlchemyError, OSError)


@dataclass
class ReindexResult:
    """Outcome of a rebuild.

    Attributes:
        indexed: Documents the index accepted.
        pruned: Stale documents removed.
    """

    indexed: int = 0
    pruned: int = 0


async def rebuild_search_index(
    session_factory: async_sessionmaker[AsyncSession],
    indexer: IndexSynchronizer,
    prune: bool = True,
) -> ReindexResult:
    """Rebuild the search index from the system of record.

    Args:
        session_factory: Factory for the snapshot session.
        indexer: Index synchronizer.
        prune: Whether to delete documents for vanished products.

    Returns:
        ReindexResult with counts.

    Raises:
        DependencyUnavailableError: If the index fails during the rebuild.
        SQLAlchemyError: If the snapshot cannot be read.
    """
    async with session_factory() as session:
        products = await ProductRepository(session).find_all(include_categories=False)
        documents = [SearchDocument.from_product(product) for product in products]

    logger.info("Reindex started", index=indexer.index_name, products=len(documents))

    result = ReindexResult()
    result.indexed = await indexer.bulk_rebuild(documents)

    if prune:
        max_snapshot_id = max((document.id for document in documents), default=0)
        # Rows deleted during the bulk load drop out of this read
        async with session_factory() as session:
            live_ids = await ProductRepository(session).ids_up_to(max_snapshot_id)
        result.pruned = await indexer.prune_stale(live_ids, max_snapshot_id)
        result.pruned += await _prune_above_snapshot(session_factory, indexer, max_snapshot_id)

    indexer.mark_ready()

    logger.info(
        "Reindex complete",
        index=indexer.index_name,
        indexed=result.indexed,
        pruned=result.pruned,
    )
    return result


async def _prune_above_snapshot(
    session_factory: async_sessionmaker[AsyncSession],
    indexer: IndexSynchronizer,
    max_snapshot_id: int,
) -> int:
    """Delete documents above the snapshot bound that have no product row.

    Ids above the bound belong either to products created after the
    snapshot or to deleted ones; a fresh lookup tells them apart.
    """
    candidates = await indexer.ids_above(max_snapshot_id)
    if not candidates:
        return 0

    async with session_factory() as session:
        existing = await ProductRepository(session).existing_ids(candidates)

    pruned = 0
    for product_id in candidates:
        if product_id not in existing and await indexer.delete(product_id):
            pruned += 1
    return pruned


async def bootstrap_search_index(
    session_factory: async_sessionmaker[AsyncSession],
    indexer: IndexSynchronizer,
    force: bool = False,
    attempts: int = 5,
    retry_seconds: float = 5.0,
) -> bool:
    """Make sure the index exists and is populated, then open it for search.

    A freshly created index is rebuilt from the database. An existing one
    is trusted unless ``force`` is set. Once a rebuild is due, every retry
    rebuilds until one succeeds, even if an earlier attempt created the
    index and then failed while loading it.

    Args:
        session_factory: Factory for the snapshot session.
        indexer: Index synchronizer.
        force: Rebuild even when the index already existed.
        attempts: Tries before giving up.
        retry_seconds: Pause between tries.

    Returns:
        True once the index is ready, False if every attempt failed.
    """
    needs_rebuild = force
    for attempt in range(1, attempts + 1):
        try:
            if await indexer.ensure_index():
                needs_rebuild = True
            if needs_rebuild:
                await rebuild_search_index(session_factory, indexer)
            indexer.mark_ready()
            return True
        except BOOTSTRAP_RETRY_ERRORS as e:
            logger.warning(
                "Search index bootstrap failed",
                index=indexer.index_name,
                attempt=attempt,
                attempts=attempts,
                rebuild_pending=needs_rebuild,
                error_type=type(e).__name__,
                error=str(e),
            )
            if attempt < attempts:
                await asyncio.sleep(retry_seconds)

    logger.error(
        "Search index unavailable, search stays disabled",
        index=indexer.index_name,
        attempts=attempts,
    )
    return False


def log_bootstrap_outcome(task: "asyncio.Task[bool]") -> None:
    """Done callback for the background bootstrap task.

    Collects the task's exception so a crash is logged instead of lost.
    """
    if task.cancelled():
        logger.info("Search index bootstrap cancelled")
        return

    error = task.exception()
    if error is not None:
        logger.error(
            "Search index bootstrap crashed",
            error_type=type(error).__name__,
            error=str(error),
            exc_info=error,
        )
