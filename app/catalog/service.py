"""Catalog service for product and category operations.

Orchestrates every write to the system of record and its propagation to
the derived stores. Within one mutation the stores are written in a fixed
order:

1. Database row and association rows, in one transaction (committed).
2. Search index document.
3. Cache eviction.

Later stores only ever observe state the database has already committed.
Failures of steps 2 and 3 do not undo step 1; they are reported on the
result as a degraded success and healed by the next reindex or by the
cache TTL.
"""

from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.catalog.associations import AssociationManager
from app.catalog.cache import CacheInvalidator
from app.catalog.indexer import IndexSynchronizer, SearchDocument
from app.catalog.models import Category, Product
from app.catalog.repository import CategoryRepository, ProductRepository
from app.catalog.search import ProductSearchService
from app.catalog.slugs import slugify
from app.domain.exceptions import (
    DomainError,
    DuplicateIdentifierError,
    InternalError,
    NotFoundError,
    ValidationError,
)

logger = structlog.get_logger()


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class ProductMutationResult:
    """Result of creating or updating a product.

    Attributes:
        product: The product as re-read after the commit.
        index_synced: Whether the search index accepted the document.
        cache_invalidated: Whether stale cache entries were evicted.
    """

    product: Product
    index_synced: bool = True
    cache_invalidated: bool = True

    @property
    def degraded(self) -> bool:
        """Committed, but a derived store missed the change."""
        return not (self.index_synced and self.cache_invalidated)


@dataclass
class ProductDeletionResult:
    """Result of deleting a product."""

    product_id: int
    slug: str
    index_synced: bool = True
    cache_invalidated: bool = True

    @property
    def degraded(self) -> bool:
        """Committed, but a derived store missed the change."""
        return not (self.index_synced and self.cache_invalidated)


@dataclass
class CategoryMutationResult:
    """Result of updating or deleting a category.

    Attributes:
        category: The category (detached after a delete).
        cache_invalidated: Whether cached payloads of linked products were evicted.
    """

    category: Category
    cache_invalidated: bool = True

    @property
    def degraded(self) -> bool:
        """Committed, but the cache missed the change."""
        return not self.cache_invalidated


@dataclass
class PaginationParams:
    """Pagination parameters.

    Attributes:
        page: Page number (1-indexed).
        per_page: Items per page.
    """

    page: int = 1
    per_page: int = 10

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValidationError("page must be a positive integer", field="page")
        if self.per_page < 1:
            raise ValidationError("perPage must be a positive integer", field="perPage")

    @property
    def offset(self) -> int:
        """Calculate offset from page number."""
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        """Get limit (alias for per_page)."""
        return self.per_page


@dataclass
class CategoryPage:
    """A category with one page of its products.

    Attributes:
        category: The category.
        products: Products on this page, ordered by id.
        total: Total number of products linked to the category.
        page: Current page.
        per_page: Items per page.
    """

    category: Category
    products: list[Product]
    total: int
    page: int
    per_page: int

    @property
    def total_pages(self) -> int:
        """Calculate total pages."""
        return (self.total + self.per_page - 1) // self.per_page

    @property
    def has_next(self) -> bool:
        """Check if there's a next page."""
        return self.page < self.total_pages


@dataclass
class _WriteScope:
    """Identifier reported if a write collides with a unique constraint."""

    slug: str | None = None


# ============================================================================
# Catalog Service
# ============================================================================


class CatalogService:
    """Service for catalog operations.

    Built per request around one database session; the index
    synchronizer and cache invalidator are shared process-wide.

    Example usage:
        async with async_session_factory() as session:
            service = CatalogService(session, indexer, cache)
            result = await service.create_product("Trail Runner 3000", category_ids=[1])
            print(result.product.slug)  # trail-runner-3000
    """

    def __init__(
        self,
        session: AsyncSession,
        indexer: IndexSynchronizer,
        cache: CacheInvalidator,
        search_max_results: int = 50,
    ) -> None:
        """Initialize service.

        Args:
            session: Async SQLAlchemy session.
            indexer: Search index synchronizer.
            cache: Cache invalidator for product payloads.
            search_max_results: Maximum hits per search.
        """
        self.session = session
        self.indexer = indexer
        self.cache = cache
        self.products = ProductRepository(session)
        self.categories = CategoryRepository(session)
        self.associations = AssociationManager(session)
        self.search_service = ProductSearchService(
            indexer, self.products, max_results=search_max_results
        )

    @asynccontextmanager
    async def _transaction(
        self, entity_type: str, slug: str | None = None
    ) -> AsyncIterator[_WriteScope]:
        """Run a system-of-record write and commit it.

        Translates store failures into domain errors and rolls back. Callers
        that derive the slug inside the write record it on the yielded scope.
        """
        scope = _WriteScope(slug=slug)
        try:
            yield scope
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateIdentifierError(entity_type, scope.slug or "") from e
        except DomainError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Database write failed", entity_type=entity_type, error=str(e))
            raise InternalError(f"{entity_type} write failed") from e

    async def _hydrate(self, product_id: int) -> Product:
        """Re-read a product with its categories after a write."""
        product = await self.products.get_by_id(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    async def create_product(
        self,
        title: str,
        description: str | None = None,
        category_ids: Iterable[int] | None = None,
    ) -> ProductMutationResult:
        """Create a product and mirror it into the search index.

        Args:
            title: Product title; its slug must be unused.
            description: Optional description.
            category_ids: Categories to link, if any.

        Returns:
            ProductMutationResult with the hydrated product.

        Raises:
            ValidationError: If the title yields no slug.
            DuplicateIdentifierError: If the slug is taken.
            AssociationResolutionError: If a category id is unknown.
        """
        slug = slugify(title)

        async with self._transaction("Product", slug):
            product = await self.products.add(
                Product(title=title.strip(), slug=slug, description=description)
            )
            if category_ids is not None:
                await self.associations.set_categories(product.id, category_ids)

        product = await self._hydrate(product.id)
        index_synced = await self.indexer.upsert(SearchDocument.from_product(product))

        logger.info(
            "Product created",
            product_id=product.id,
            slug=product.slug,
            index_synced=index_synced,
        )
        return ProductMutationResult(product=product, index_synced=index_synced)

    async def update_product(
        self,
        product_id: int,
        title: str | None = None,
        description: str | None = None,
        category_ids: Iterable[int] | None = None,
    ) -> ProductMutationResult:
        """Apply a partial update to a product.

        Omitted (None) fields are left untouched. The slug is re-derived
        only when the title changes. ``category_ids`` replaces the whole
        category set; an empty iterable clears it.

        Args:
            product_id: Product to update.
            title: New title.
            description: New description.
            category_ids: New complete category set.

        Returns:
            ProductMutationResult with the re-read product.

        Raises:
            NotFoundError: If the product does not exist.
            ValidationError: If the new title yields no slug.
            DuplicateIdentifierError: If the new slug is taken.
            AssociationResolutionError: If a category id is unknown.
        """
        async with self._transaction("Product") as scope:
            product = await self.products.get_by_id(
                product_id, include_categories=False, for_update=True
            )
            if product is None:
                raise NotFoundError("Product", product_id)

            old_slug = product.slug
            if title is not None:
                scope.slug = slugify(title)
                if title.strip() != product.title:
                    product.title = title.strip()
                    product.slug = scope.slug
            if description is not None:
                product.description = description
            await self.session.flush()

            if category_ids is not None:
                await self.associations.set_categories(product.id, category_ids)

        product = await self._hydrate(product_id)
        index_synced = await self.indexer.upsert(SearchDocument.from_product(product))
        cache_invalidated = await self.cache.invalidate(old_slug, product.slug)

        logger.info(
            "Product updated",
            product_id=product.id,
            slug=product.slug,
            previous_slug=old_slug,
            index_synced=index_synced,
            cache_invalidated=cache_invalidated,
        )
        return ProductMutationResult(
            product=product,
            index_synced=index_synced,
            cache_invalidated=cache_invalidated,
        )

    async def delete_product(self, product_id: int) -> ProductDeletionResult:
        """Delete a product, its links, its document and its cache entry.

        Raises:
            NotFoundError: If the product does not exist.
        """
        async with self._transaction("Product", None):
            product = await self.products.get_by_id(
                product_id, include_categories=False, for_update=True
            )
            if product is None:
                raise NotFoundError("Product", product_id)
            slug = product.slug
            await self.products.delete(product)

        index_synced = await self.indexer.delete(product_id)
        cache_invalidated = await self.cache.invalidate(slug)

        logger.info(
            "Product deleted",
            product_id=product_id,
            slug=slug,
            index_synced=index_synced,
            cache_invalidated=cache_invalidated,
        )
        return ProductDeletionResult(
            product_id=product_id,
            slug=slug,
            index_synced=index_synced,
            cache_invalidated=cache_invalidated,
        )

    async def list_products(self) -> Sequence[Product]:
        """List every product with its categories."""
        return await self.products.find_all()

    async def get_product(self, product_id: int) -> Product:
        """Get a product by id.

        Raises:
            NotFoundError: If the product does not exist.
        """
        product = await self.products.get_by_id(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    async def get_product_by_slug(self, slug: str) -> Product:
        """Get a product by slug.

        Raises:
            NotFoundError: If the product does not exist.
        """
        product = await self.products.get_by_slug(slug)
        if product is None:
            raise NotFoundError("Product", slug)
        return product

    async def find_product(self, product_id: int) -> Product | None:
        """Re-read the committed state of a product, or None once it is gone."""
        return await self.products.get_by_id(product_id)

    async def search_products(self, query_text: str | None) -> list[Product]:
        """Fuzzy title search, in relevance order.

        Raises:
            DependencyUnavailableError: If the search index cannot answer.
        """
        return await self.search_service.search(query_text)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def create_category(self, title: str) -> Category:
        """Create a category.

        Raises:
            ValidationError: If the title yields no slug.
            DuplicateIdentifierError: If the title or slug is taken.
        """
        slug = slugify(title)

        async with self._transaction("Category", slug):
            category = await self.categories.add(Category(title=title.strip(), slug=slug))

        logger.info("Category created", category_id=category.id, slug=slug)
        return category

    async def update_category(
        self,
        category_id: int,
        title: str | None = None,
    ) -> CategoryMutationResult:
        """Rename a category.

        Cached payloads of linked products embed the category title, so a
        rename evicts them.

        Raises:
            NotFoundError: If the category does not exist.
            ValidationError: If the new title yields no slug.
            DuplicateIdentifierError: If the new title or slug is taken.
        """
        linked_slugs: list[str] = []

        async with self._transaction("Category") as scope:
            category = await self.categories.get_by_id(category_id, for_update=True)
            if category is None:
                raise NotFoundError("Category", category_id)

            if title is not None:
                scope.slug = slugify(title)
                if title.strip() != category.title:
                    category.title = title.strip()
                    category.slug = scope.slug
                    await self.session.flush()
                    linked_slugs = await self.products.slugs_for_category(category_id)

        cache_invalidated = await self.cache.invalidate(*linked_slugs)

        logger.info(
            "Category updated",
            category_id=category.id,
            slug=category.slug,
            linked_products=len(linked_slugs),
        )
        return CategoryMutationResult(category=category, cache_invalidated=cache_invalidated)

    async def delete_category(self, category_id: int) -> CategoryMutationResult:
        """Delete a category and its links; linked products remain.

        Raises:
            NotFoundError: If the category does not exist.
        """
        async with self._transaction("Category", None):
            category = await self.categories.get_by_id(category_id, for_update=True)
            if category is None:
                raise NotFoundError("Category", category_id)
            linked_slugs = await self.products.slugs_for_category(category_id)
            await self.categories.delete(category)

        cache_invalidated = await self.cache.invalidate(*linked_slugs)

        logger.info(
            "Category deleted",
            category_id=category_id,
            slug=category.slug,
            linked_products=len(linked_slugs),
        )
        return CategoryMutationResult(category=category, cache_invalidated=cache_invalidated)

    async def list_categories(self) -> Sequence[Category]:
        """List every category."""
        return await self.categories.find_all()

    async def get_category(self, category_id: int) -> Category:
        """Get a category by id.

        Raises:
            NotFoundError: If the category does not exist.
        """
        category = await self.categories.get_by_id(category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        return category

    async def get_category_page(
        self,
        slug: str,
        page: int = 1,
        per_page: int = 10,
    ) -> CategoryPage:
        """Resolve a category by slug with one page of its products.

        Args:
            slug: Category slug.
            page: Page number (1-based).
            per_page: Items per page.

        Returns:
            CategoryPage with a count-accurate total.

        Raises:
            ValidationError: If page or per_page is not positive.
            NotFoundError: If the category does not exist.
        """
        pagination = PaginationParams(page=page, per_page=per_page)

        category = await self.categories.get_by_slug(slug)
        if category is None:
            raise NotFoundError("Category", slug)

        total = await self.products.count_by_category(category.id)
        products = await self.products.find_by_category(
            category.id,
            limit=pagination.limit,
            offset=pagination.offset,
        )

        return CategoryPage(
            category=category,
            products=list(products),
            total=total,
            page=pagination.page,
            per_page=pagination.per_page,
        )
