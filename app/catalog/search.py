"""Free-text product search.

Runs a fuzzy title query against the search index, then hydrates the
hits from the system of record in one batched lookup.
"""

from collections.abc import Sequence

import structlog

from app.catalog.indexer import SEARCH_INDEX_ERRORS, IndexSynchronizer
from app.catalog.models import Product
from app.catalog.repository import ProductRepository
from app.domain.exceptions import DependencyUnavailableError

logger = structlog.get_logger()


class ProductSearchService:
    """Search products by title with typo tolerance.

    Example usage:
        service = ProductSearchService(indexer, ProductRepository(session))
        products = await service.search("runer")
    """

    def __init__(
        self,
        indexer: IndexSynchronizer,
        repository: ProductRepository,
        max_results: int = 50,
    ) -> None:
        """Initialize search service.

        Args:
            indexer: Synchronizer owning the index client and readiness.
            repository: Product repository for hydration.
            max_results: Maximum hits requested from the index.
        """
        self.indexer = indexer
        self.repository = repository
        self.max_results = max_results

    async def search_ids(self, query_text: str) -> list[int]:
        """Ranked product ids matching the query.

        Fuzziness is AUTO: exact match for terms up to 2 characters, one
        edit for 3 to 5, two edits beyond.

        Raises:
            DependencyUnavailableError: If the index is not ready or fails.
        """
        if not self.indexer.ready:
            raise DependencyUnavailableError("search_index", "index is not ready")

        try:
            response = await self.indexer.client.search(
                index=self.indexer.index_name,
                query={
                    "match": {
                        "title": {
                            "query": query_text,
                            "fuzziness": "AUTO",
                            "fuzzy_rewrite": "constant_score",
                        }
                    }
                },
                size=self.max_results,
            )
        except SEARCH_INDEX_ERRORS as e:
            logger.error("Search query failed", query=query_text, error=str(e))
            raise DependencyUnavailableError("search_index", str(e)) from e

        return [int(hit["_source"]["id"]) for hit in response["hits"]["hits"]]

    async def search(self, query_text: str | None) -> list[Product]:
        """Products matching the query, in index relevance order.

        Args:
            query_text: Free-text query.

        Returns:
            Hydrated products; empty for a blank query or no hits.

        Raises:
            DependencyUnavailableError: If the index is not ready or fails.
        """
        if query_text is None or not query_text.strip():
            return []

        ranked_ids = await self.search_ids(query_text.strip())
        if not ranked_ids:
            return []

        products = await self.repository.find_by_ids(ranked_ids)
        results = rank_by_ids(products, ranked_ids)

        if len(results) < len(ranked_ids):
            # Documents whose rows were deleted; cleared by the next reindex
            logger.info(
                "Search hits missing from database",
                query=query_text,
                hits=len(ranked_ids),
                resolved=len(results),
            )
        return results


def rank_by_ids(products: Sequence[Product], ranked_ids: Sequence[int]) -> list[Product]:
    """Order products by their position in ``ranked_ids``, dropping the rest."""
    by_id = {product.id: product for product in products}
    return [by_id[product_id] for product_id in ranked_ids if product_id in by_id]
