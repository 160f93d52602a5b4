"""API schemas for the Catalog API.

Pydantic models for request/response validation and serialization.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.catalog.models import Category, Product


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict | list = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


class MessageResponse(BaseModel):
    """Plain confirmation message."""

    message: str


# ============================================================================
# Category Schemas
# ============================================================================


class CategoryCreateRequest(BaseModel):
    """Request to create a category."""

    title: str = Field(..., min_length=1, max_length=255, description="Category title")


class CategoryUpdateRequest(BaseModel):
    """Request to update a category. Omitted fields are left untouched."""

    title: str | None = Field(
        default=None, min_length=1, max_length=255, description="New category title"
    )


class CategoryResponse(BaseModel):
    """Response for a category."""

    id: int = Field(..., description="Category identifier")
    slug: str = Field(..., description="URL-safe identifier")
    title: str = Field(..., description="Category title")


class CategoryPageResponse(BaseModel):
    """A category with one page of its products."""

    model_config = ConfigDict(populate_by_name=True)

    category: CategoryResponse
    products: list["ProductResponse"]
    total: int = Field(..., description="Total products in the category")
    page: int = Field(..., description="Current page number")
    per_page: int = Field(..., alias="perPage", description="Items per page")


# ============================================================================
# Product Schemas
# ============================================================================


class ProductCreateRequest(BaseModel):
    """Request to create a product."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=500, description="Product title")
    description: str | None = Field(default=None, description="Product description")
    category_ids: list[int] | None = Field(
        default=None,
        alias="categoryIds",
        description="Categories to link the product to",
    )


class ProductUpdateRequest(BaseModel):
    """Request to update a product.

    Omitted fields are left untouched. ``categoryIds`` replaces the whole
    category set; an empty list unlinks every category.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = Field(
        default=None, min_length=1, max_length=500, description="New product title"
    )
    description: str | None = Field(default=None, description="New description")
    category_ids: list[int] | None = Field(
        default=None,
        alias="categoryIds",
        description="Complete new category set",
    )


class ProductResponse(BaseModel):
    """Response for a product."""

    id: int = Field(..., description="Product identifier")
    slug: str = Field(..., description="URL-safe identifier")
    title: str = Field(..., description="Product title")
    description: str | None = Field(default=None, description="Product description")
    categories: list[CategoryResponse] = Field(
        default_factory=list, description="Linked categories"
    )


CategoryPageResponse.model_rebuild()


# ============================================================================
# Admin Schemas
# ============================================================================


class ReindexResponse(BaseModel):
    """Response for a search index rebuild."""

    indexed: int = Field(..., description="Documents written to the index")
    pruned: int = Field(..., description="Stale documents removed")
    finished_at: datetime = Field(..., description="When the rebuild finished")


# ============================================================================
# Converters
# ============================================================================


def category_to_response(category: Category) -> CategoryResponse:
    """Convert Category model to response schema."""
    return CategoryResponse(id=category.id, slug=category.slug, title=category.title)


def product_to_response(product: Product) -> ProductResponse:
    """Convert Product model to response schema."""
    return ProductResponse(
        id=product.id,
        slug=product.slug,
        title=product.title,
        description=product.description,
        categories=[category_to_response(c) for c in product.categories],
    )
