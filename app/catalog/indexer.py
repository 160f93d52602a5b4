"""Search index synchronization.

Mirrors products into Elasticsearch. The index is a derived projection
of the system of record: per-document writes are best effort (a failure
is logged and reported, never raised), and a full bulk rebuild restores
it from the database. Documents carry the row's ``updated_at`` as an external
version so a stale copy never replaces a newer one.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from elasticsearch import ApiError, AsyncElasticsearch, ConflictError, TransportError

from app.catalog.models import Product
from app.domain.exceptions import DependencyUnavailableError

logger = structlog.get_logger()

SEARCH_INDEX_ERRORS = (ApiError, TransportError)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

INDEX_MAPPINGS: dict[str, Any] = {
    "properties": {
        "id": {"type": "integer"},
        "title": {"type": "text"},
        "slug": {"type": "text"},
        "description": {"type": "text"},
    }
}


def document_version(updated_at: datetime | None) -> int | None:
    """External document version for a row: ``updated_at`` in microseconds."""
    if updated_at is None:
        return None
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    return (updated_at - EPOCH) // timedelta(microseconds=1)


@dataclass(frozen=True)
class SearchDocument:
    """Denormalized projection of a product stored in the index.

    Attributes:
        id: Product id, also used as the document id.
        title: Product title.
        slug: Product slug.
        description: Product description.
        version: External version; the index refuses to replace a
            document with an older one. None writes unversioned.
    """

    id: int
    title: str
    slug: str
    description: str | None = None
    version: int | None = None

    @classmethod
    def from_product(cls, product: Product) -> "SearchDocument":
        """Build the document for a product row."""
        return cls(
            id=product.id,
            title=product.title,
            slug=product.slug,
            description=product.description,
            version=document_version(product.updated_at),
        )

    def version_params(self) -> dict[str, Any]:
        """Versioning parameters for index and bulk requests."""
        if self.version is None:
            return {}
        return {"version": self.version, "version_type": "external_gte"}

    def to_source(self) -> dict[str, Any]:
        """Document body sent to the index."""
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
        }


def _chunks(documents: Iterable[SearchDocument], size: int) -> Iterable[list[SearchDocument]]:
    """Split documents into lists of at most ``size`` items."""
    chunk: list[SearchDocument] = []
    for document in documents:
        chunk.append(document)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


class IndexSynchronizer:
    """Keeps the products index in step with the system of record.

    Example usage:
        indexer = IndexSynchronizer(client, "products")
        await indexer.ensure_index()
        await indexer.upsert(SearchDocument.from_product(product))
    """

    def __init__(
        self,
        client: AsyncElasticsearch,
        index_name: str,
        refresh: bool | str = "wait_for",
        chunk_size: int = 500,
    ) -> None:
        """Initialize synchronizer.

        Args:
            client: Async Elasticsearch client.
            index_name: Name of the products index.
            refresh: Refresh policy for per-document writes.
            chunk_size: Documents per bulk request.
        """
        self.client = client
        self.index_name = index_name
        self.refresh = refresh
        self.chunk_size = chunk_size
        self.ready = False

    def mark_ready(self) -> None:
        """Flag the index as bootstrapped and open for search traffic."""
        if not self.ready:
            logger.info("Search index ready", index=self.index_name)
        self.ready = True

    async def ensure_index(self) -> bool:
        """Create the index with the fixed mapping if it does not exist.

        Returns:
            True if the index was created by this call.

        Raises:
            DependencyUnavailableError: If the index cannot be reached.
        """
        try:
            if await self.client.indices.exists(index=self.index_name):
                logger.info("Search index already exists", index=self.index_name)
                return False

            await self.client.indices.create(
                index=self.index_name,
                mappings=INDEX_MAPPINGS,
            )
        except SEARCH_INDEX_ERRORS as e:
            raise DependencyUnavailableError("search_index", str(e)) from e

        logger.info("Search index created", index=self.index_name)
        return True

    async def upsert(self, document: SearchDocument) -> bool:
        """Create or fully overwrite the document for a product.

        A versioned document older than the stored one is left out; the
        stored document already reflects a later commit.

        Args:
            document: Document to write.

        Returns:
            True if the index holds this or a newer version, False if the
            write failed.
        """
        try:
            await self.client.index(
                index=self.index_name,
                id=str(document.id),
                document=document.to_source(),
                refresh=self.refresh,
                **document.version_params(),
            )
        except ConflictError:
            logger.info(
                "Search index holds a newer document",
                index=self.index_name,
                product_id=document.id,
                version=document.version,
            )
        except SEARCH_INDEX_ERRORS as e:
            logger.warning(
                "Search index upsert failed",
                index=self.index_name,
                product_id=document.id,
                error=str(e),
            )
            return False
        return True

    async def delete(self, product_id: int) -> bool:
        """Remove the document for a product; absent documents are fine.

        Args:
            product_id: Product whose document is removed.

        Returns:
            True if the document is gone, False if the index failed.
        """
        try:
            await self.client.options(ignore_status=404).delete(
                index=self.index_name,
                id=str(product_id),
                refresh=self.refresh,
            )
        except SEARCH_INDEX_ERRORS as e:
            logger.warning(
                "Search index delete failed",
                index=self.index_name,
                product_id=product_id,
                error=str(e),
            )
            return False
        return True

    async def bulk_rebuild(self, documents: Iterable[SearchDocument]) -> int:
        """Bulk-load a snapshot of the system of record.

        Documents are keyed by product id, so running this twice over the
        same snapshot leaves the index unchanged. Writes that happen after
        the snapshot was taken go through ``upsert`` with a later version,
        and the snapshot's older copy of such a document is rejected.

        Args:
            documents: Snapshot documents.

        Returns:
            Number of documents the index accepted.

        Raises:
            DependencyUnavailableError: If a bulk request fails outright.
        """
        indexed = 0
        superseded = 0
        failed = 0
        for chunk in _chunks(documents, self.chunk_size):
            operations: list[dict[str, Any]] = []
            for document in chunk:
                operations.append(
                    {
                        "index": {
                            "_index": self.index_name,
                            "_id": str(document.id),
                            **document.version_params(),
                        }
                    }
                )
                operations.append(document.to_source())

            try:
                response = await self.client.bulk(operations=operations, refresh=True)
            except SEARCH_INDEX_ERRORS as e:
                raise DependencyUnavailableError("search_index", str(e)) from e

            for item in response["items"]:
                status = item["index"].get("status", 500)
                if status < 300:
                    indexed += 1
                elif status == 409:
                    superseded += 1
                else:
                    failed += 1

        if superseded:
            logger.info(
                "Bulk rebuild kept newer documents",
                index=self.index_name,
                superseded=superseded,
            )
        if failed:
            logger.warning(
                "Bulk rebuild skipped documents",
                index=self.index_name,
                indexed=indexed,
                failed=failed,
            )
        logger.info("Bulk rebuild complete", index=self.index_name, indexed=indexed)
        return indexed

    async def prune_stale(self, live_ids: Sequence[int], max_snapshot_id: int) -> int:
        """Delete documents for products missing from a snapshot.

        Only ids up to ``max_snapshot_id`` are considered, so documents
        for products created after the snapshot was taken survive.

        Args:
            live_ids: Product ids present in the snapshot.
            max_snapshot_id: Highest product id the snapshot could contain.

        Returns:
            Number of documents deleted.

        Raises:
            DependencyUnavailableError: If the index cannot be reached.
        """
        query = {
            "bool": {
                "filter": [{"range": {"id": {"lte": max_snapshot_id}}}],
                "must_not": [{"ids": {"values": [str(i) for i in live_ids]}}],
            }
        }
        try:
            response = await self.client.delete_by_query(
                index=self.index_name,
                query=query,
                refresh=True,
            )
        except SEARCH_INDEX_ERRORS as e:
            raise DependencyUnavailableError("search_index", str(e)) from e

        deleted = response["deleted"]
        if deleted:
            logger.info("Pruned stale documents", index=self.index_name, deleted=deleted)
        return deleted

    async def ids_above(self, min_exclusive_id: int, limit: int = 10000) -> list[int]:
        """List document ids greater than ``min_exclusive_id``, ascending.

        Raises:
            DependencyUnavailableError: If the index cannot be reached.
        """
        try:
            response = await self.client.search(
                index=self.index_name,
                query={"range": {"id": {"gt": min_exclusive_id}}},
                source=["id"],
                sort=[{"id": "asc"}],
                size=limit,
            )
        except SEARCH_INDEX_ERRORS as e:
            raise DependencyUnavailableError("search_index", str(e)) from e
        return [int(hit["_source"]["id"]) for hit in response["hits"]["hits"]]

    async def document_count(self) -> int:
        """Count documents in the index.

        Raises:
            DependencyUnavailableError: If the index cannot be reached.
        """
        try:
            response = await self.client.count(index=self.index_name)
        except SEARCH_INDEX_ERRORS as e:
            raise DependencyUnavailableError("search_index", str(e)) from e
        return response["count"]
