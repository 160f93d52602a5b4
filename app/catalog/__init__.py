"""Product Catalog core.

Keeps the relational system of record, the search index and the cache
consistent across product and category writes.
"""

from app.catalog.associations import AssociationChange, AssociationManager
from app.catalog.cache import CacheInvalidator
from app.catalog.indexer import IndexSynchronizer, SearchDocument
from app.catalog.models import Category, Product, ProductCategory
from app.catalog.reindex import (
    ReindexResult,
    bootstrap_search_index,
    log_bootstrap_outcome,
    rebuild_search_index,
)
from app.catalog.repository import CategoryRepository, ProductRepository
from app.catalog.search import ProductSearchService
from app.catalog.service import (
    CatalogService,
    CategoryMutationResult,
    CategoryPage,
    PaginationParams,
    ProductDeletionResult,
    ProductMutationResult,
)
from app.catalog.slugs import slugify

__all__ = [
    # Models
    "Category",
    "Product",
    "ProductCategory",
    # Slugs
    "slugify",
    # Repositories
    "CategoryRepository",
    "ProductRepository",
    # Associations
    "AssociationChange",
    "AssociationManager",
    # Derived stores
    "CacheInvalidator",
    "IndexSynchronizer",
    "SearchDocument",
    "ProductSearchService",
    # Reindex
    "ReindexResult",
    "bootstrap_search_index",
    "log_bootstrap_outcome",
    "rebuild_search_index",
    # Service
    "CatalogService",
    "CategoryMutationResult",
    "CategoryPage",
    "PaginationParams",
    "ProductDeletionResult",
    "ProductMutationResult",
]
