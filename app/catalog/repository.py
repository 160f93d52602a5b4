"""Repositories for catalog database operations.

Read and write access to the system of record for products and
categories. Repositories flush but never commit; the catalog service
owns the transaction boundary.
"""

from collections.abc import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.catalog.models import Category, Product, ProductCategory


class ProductRepository:
    """Repository for Product database operations.

    Example usage:
        async with async_session_factory() as session:
            repo = ProductRepository(session)
            product = await repo.get_by_slug("trail-runner-3000")
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def add(self, product: Product) -> Product:
        """Insert a product and assign its id.

        Args:
            product: Product to insert.

        Returns:
            The inserted product.
        """
        self.session.add(product)
        await self.session.flush()
        return product

    async def get_by_id(
        self,
        product_id: int,
        include_categories: bool = True,
        for_update: bool = False,
    ) -> Product | None:
        """Get product by ID.

        Args:
            product_id: Product ID.
            include_categories: Whether to eagerly load categories.
            for_update: Lock the row until the transaction ends.

        Returns:
            Product if found, None otherwise.
        """
        query = select(Product).where(Product.id == product_id)

        if include_categories:
            query = query.options(selectinload(Product.categories))
        if for_update:
            query = query.with_for_update()

        # Refresh rows already in the identity map (categories may have changed)
        query = query.execution_options(populate_existing=True)

        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Product | None:
        """Get product by slug, with categories.

        Args:
            slug: Product slug.

        Returns:
            Product if found, None otherwise.
        """
        query = (
            select(Product)
            .where(Product.slug == slug)
            .options(selectinload(Product.categories))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def find_by_ids(self, product_ids: Sequence[int]) -> Sequence[Product]:
        """Fetch products by a set of ids in one query.

        Args:
            product_ids: Product ids to resolve.

        Returns:
            Matching products ordered by id. Unknown ids are skipped.
        """
        if not product_ids:
            return []

        query = (
            select(Product)
            .where(Product.id.in_(product_ids))
            .options(selectinload(Product.categories))
            .order_by(Product.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def existing_ids(self, product_ids: Sequence[int]) -> set[int]:
        """Return the subset of ids that have a product row."""
        if not product_ids:
            return set()
        result = await self.session.execute(
            select(Product.id).where(Product.id.in_(product_ids))
        )
        return set(result.scalars().all())

    async def ids_up_to(self, max_id: int) -> list[int]:
        """Product ids at or below ``max_id``, ascending."""
        result = await self.session.execute(
            select(Product.id).where(Product.id <= max_id).order_by(Product.id)
        )
        return list(result.scalars().all())

    async def find_all(self, include_categories: bool = True) -> Sequence[Product]:
        """List every product ordered by id.

        Args:
            include_categories: Whether to eagerly load categories.

        Returns:
            All products.
        """
        query = select(Product).order_by(Product.id)
        if include_categories:
            query = query.options(selectinload(Product.categories)).execution_options(
                populate_existing=True
            )

        result = await self.session.execute(query)
        return result.scalars().all()

    async def find_by_category(
        self,
        category_id: int,
        limit: int,
        offset: int,
    ) -> Sequence[Product]:
        """Page through the distinct products linked to a category.

        Args:
            category_id: Category to filter by.
            limit: Maximum results.
            offset: Result offset for pagination.

        Returns:
            Products ordered by id.
        """
        linked = select(ProductCategory.product_id).where(
            ProductCategory.category_id == category_id
        )
        query = (
            select(Product)
            .where(Product.id.in_(linked))
            .options(selectinload(Product.categories))
            .order_by(Product.id)
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def count_by_category(self, category_id: int) -> int:
        """Count distinct products linked to a category.

        Args:
            category_id: Category to filter by.

        Returns:
            Number of products.
        """
        query = select(func.count(func.distinct(ProductCategory.product_id))).where(
            ProductCategory.category_id == category_id
        )
        result = await self.session.execute(query)
        return result.scalar_one()

    async def slugs_for_category(self, category_id: int) -> list[str]:
        """Get the slugs of every product linked to a category.

        Args:
            category_id: Category to filter by.

        Returns:
            Product slugs.
        """
        query = (
            select(Product.slug)
            .join(ProductCategory, ProductCategory.product_id == Product.id)
            .where(ProductCategory.category_id == category_id)
            .order_by(Product.id)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def delete(self, product: Product) -> None:
        """Delete a product and its association rows.

        Args:
            product: Product to delete.
        """
        await self.session.execute(
            delete(ProductCategory).where(ProductCategory.product_id == product.id)
        )
        await self.session.delete(product)
        await self.session.flush()


class CategoryRepository:
    """Repository for Category database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def add(self, category: Category) -> Category:
        """Insert a category and assign its id."""
        self.session.add(category)
        await self.session.flush()
        return category

    async def get_by_id(self, category_id: int, for_update: bool = False) -> Category | None:
        """Get category by ID."""
        query = select(Category).where(Category.id == category_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Category | None:
        """Get category by slug."""
        result = await self.session.execute(select(Category).where(Category.slug == slug))
        return result.scalar_one_or_none()

    async def find_all(self) -> Sequence[Category]:
        """List every category ordered by id."""
        result = await self.session.execute(select(Category).order_by(Category.id))
        return result.scalars().all()

    async def existing_ids(self, category_ids: set[int]) -> set[int]:
        """Return the subset of ids that have a category row."""
        if not category_ids:
            return set()
        result = await self.session.execute(
            select(Category.id).where(Category.id.in_(sorted(category_ids)))
        )
        return set(result.scalars().all())

    async def delete(self, category: Category) -> None:
        """Delete a category and its association rows; products stay."""
        await self.session.execute(
            delete(ProductCategory).where(ProductCategory.category_id == category.id)
        )
        await self.session.delete(category)
        await self.session.flush()
