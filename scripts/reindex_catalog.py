#!/usr/bin/env python3
"""Rebuild the product search index.

Snapshots every product from the database, bulk-loads it into the
search index and prunes documents of deleted products.

Usage:
    python scripts/reindex_catalog.py
    python scripts/reindex_catalog.py --create-tables
    python scripts/reindex_catalog.py --no-prune
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.catalog.indexer import IndexSynchronizer
from app.catalog.reindex import rebuild_search_index
from app.infrastructure.clients import create_search_client
from app.infrastructure.config import settings
from app.infrastructure.database import async_session_factory, engine, Base
from app.infrastructure.logging import configure_logging


async def create_tables() -> None:
    """Create database tables if they don't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Rebuild the product search index from the database",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create database tables before reindexing",
    )
    parser.add_argument(
        "--no-prune",
        action="store_true",
        help="Keep documents whose products no longer exist",
    )

    args = parser.parse_args()
    configure_logging()

    print("=" * 60)
    print("Catalog Reindexer")
    print("=" * 60)
    print(f"Index: {settings.elasticsearch_index}")
    print(f"Prune stale documents: {not args.no_prune}")
    print()

    if args.create_tables:
        print("Creating database tables...")
        await create_tables()
        print("Tables ready.")
        print()

    client = create_search_client()
    indexer = IndexSynchronizer(
        client,
        settings.elasticsearch_index,
        refresh=settings.elasticsearch_refresh,
        chunk_size=settings.bulk_chunk_size,
    )

    try:
        created = await indexer.ensure_index()
        if created:
            print(f"  ✓ Created index {settings.elasticsearch_index}")

        result = await rebuild_search_index(
            async_session_factory,
            indexer,
            prune=not args.no_prune,
        )
        print(f"  ✓ Indexed: {result.indexed} products")
        print(f"  ✓ Pruned: {result.pruned} stale documents")
        print()
    except Exception as e:
        print(f"  ✗ Error: {e}")
        raise
    finally:
        await client.close()
        await engine.dispose()

    print("=" * 60)
    print("Reindex complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
