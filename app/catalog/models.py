"""SQLAlchemy models for the product catalog.

Defines Product, Category and the explicit ProductCategory association
table. These tables are the system of record; the search index and the
cache are derived from them.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.infrastructure.database import Base


class ProductCategory(Base):
    """Link between a product and a category.

    The composite primary key guarantees at most one row per
    (product_id, category_id) pair. Rows are written only by the
    association manager.

    Attributes:
        product_id: Linked product.
        category_id: Linked category.
    """

    __tablename__ = "product_categories"

    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        primary_key=True,
    )
    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<ProductCategory(product_id={self.product_id}, category_id={self.category_id})>"


class Category(Base):
    """Category entity in the catalog.

    Attributes:
        id: Unique category identifier.
        title: Category title (unique).
        slug: URL-safe identifier derived from the title (unique).
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Category(id={self.id}, slug={self.slug})>"

    def to_dict(self) -> dict:
        """Convert to dictionary.

        Returns:
            Dictionary representation.
        """
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
        }


class Product(Base):
    """Product entity in the catalog.

    Attributes:
        id: Unique product identifier.
        title: Product title (not unique).
        slug: URL-safe identifier derived from the title (unique).
        description: Product description.
        categories: Linked categories, read-only (see ProductCategory).
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    slug: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Hydration only; association rows are managed explicitly
    categories: Mapped[list[Category]] = relationship(
        Category,
        secondary="product_categories",
        order_by=Category.id,
        viewonly=True,
        lazy="raise",
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Product(id={self.id}, slug={self.slug})>"

    def to_dict(self) -> dict:
        """Convert to dictionary.

        Returns:
            Dictionary representation including categories.
        """
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "description": self.description,
            "categories": [c.to_dict() for c in self.categories],
        }
