"""Admin endpoints.

Operational actions on the derived stores.
"""

from datetime import datetime, timezone
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.dependencies import IndexerDep, get_session_factory
from app.api.schemas import ErrorResponse, ReindexResponse
from app.catalog.reindex import rebuild_search_index

logger = structlog.get_logger()

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/reindex",
    response_model=ReindexResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Rebuild search index",
    description=(
        "Rebuild the search index from the database and prune documents "
        "of deleted products. Safe to run while writes continue."
    ),
)
async def reindex(
    indexer: IndexerDep,
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> ReindexResponse:
    """Run a full rebuild of the search index.

    Args:
        indexer: Index synchronizer.
        session_factory: Factory for the snapshot session.

    Returns:
        Counts of indexed and pruned documents.
    """
    logger.info("Reindex requested", index=indexer.index_name)

    await indexer.ensure_index()
    result = await rebuild_search_index(session_factory, indexer)

    return ReindexResponse(
        indexed=result.indexed,
        pruned=result.pruned,
        finished_at=datetime.now(timezone.utc),
    )
