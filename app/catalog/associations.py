"""Product to category association management.

Replace-all semantics: the caller supplies the complete category set for
a product and the stored links are made to match it exactly.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog
from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.catalog.models import Product, ProductCategory
from app.catalog.repository import CategoryRepository
from app.domain.exceptions import AssociationResolutionError, NotFoundError

logger = structlog.get_logger()


@dataclass
class AssociationChange:
    """Outcome of a replace-all call.

    Attributes:
        added: Category ids newly linked.
        removed: Category ids unlinked.
        kept: Category ids that were already linked and stay.
    """

    added: set[int] = field(default_factory=set)
    removed: set[int] = field(default_factory=set)
    kept: set[int] = field(default_factory=set)

    @property
    def changed(self) -> bool:
        """Whether any row was inserted or deleted."""
        return bool(self.added or self.removed)


class AssociationManager:
    """Owns the rows of the ``product_categories`` table.

    Runs inside the caller's transaction and only flushes, so a failure
    here rolls back together with the product write that triggered it.

    Example usage:
        manager = AssociationManager(session)
        await manager.set_categories(product.id, {1, 2})
        await session.commit()
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize manager with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session
        self.categories = CategoryRepository(session)

    async def category_ids_for(self, product_id: int) -> set[int]:
        """Get the category ids currently linked to a product."""
        result = await self.session.execute(
            select(ProductCategory.category_id).where(
                ProductCategory.product_id == product_id
            )
        )
        return set(result.scalars().all())

    async def product_ids_for(self, category_id: int) -> set[int]:
        """Get the product ids currently linked to a category."""
        result = await self.session.execute(
            select(ProductCategory.product_id).where(
                ProductCategory.category_id == category_id
            )
        )
        return set(result.scalars().all())

    async def set_categories(
        self,
        product_id: int,
        category_ids: Iterable[int],
    ) -> AssociationChange:
        """Make the product's categories exactly ``category_ids``.

        An empty iterable clears every link. Rows already present for
        members of the new set are left untouched.

        Args:
            product_id: Product whose links are replaced.
            category_ids: The complete new category set.

        Returns:
            What was added, removed and kept.

        Raises:
            NotFoundError: If the product does not exist.
            AssociationResolutionError: If any category id is unknown.
        """
        if await self.session.get(Product, product_id) is None:
            raise NotFoundError("Product", product_id)

        desired = set(category_ids)
        missing = desired - await self.categories.existing_ids(desired)
        if missing:
            raise AssociationResolutionError(sorted(missing))

        current = await self.category_ids_for(product_id)
        change = AssociationChange(
            added=desired - current,
            removed=current - desired,
            kept=current & desired,
        )

        if change.removed:
            await self.session.execute(
                delete(ProductCategory).where(
                    ProductCategory.product_id == product_id,
                    ProductCategory.category_id.in_(sorted(change.removed)),
                )
            )
        if change.added:
            await self.session.execute(
                insert(ProductCategory),
                [
                    {"product_id": product_id, "category_id": category_id}
                    for category_id in sorted(change.added)
                ],
            )
        await self.session.flush()

        logger.info(
            "Product categories replaced",
            product_id=product_id,
            added=sorted(change.added),
            removed=sorted(change.removed),
            kept=sorted(change.kept),
        )
        return change
