"""Category API endpoints.

Provides endpoints for managing categories and browsing the products
linked to them.
"""

from fastapi import APIRouter, Query, Response, status

from app.api.dependencies import CONSISTENCY_HEADER, CatalogServiceDep
from app.api.schemas import (
    CategoryCreateRequest,
    CategoryPageResponse,
    CategoryResponse,
    CategoryUpdateRequest,
    ErrorResponse,
    MessageResponse,
    category_to_response,
    product_to_response,
)

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Create category",
)
async def create_category(
    request: CategoryCreateRequest,
    service: CatalogServiceDep,
) -> CategoryResponse:
    """Create a new category."""
    category = await service.create_category(request.title)
    return category_to_response(category)


@router.get(
    "",
    response_model=list[CategoryResponse],
    summary="List categories",
)
async def list_categories(service: CatalogServiceDep) -> list[CategoryResponse]:
    """List every category."""
    categories = await service.list_categories()
    return [category_to_response(c) for c in categories]


@router.get(
    "/id/{category_id}",
    response_model=CategoryResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get category by ID",
)
async def get_category(category_id: int, service: CatalogServiceDep) -> CategoryResponse:
    """Get a category by ID."""
    category = await service.get_category(category_id)
    return category_to_response(category)


@router.get(
    "/{slug}",
    response_model=CategoryPageResponse,
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Get category page",
    description="Get a category by slug with one page of its products.",
)
async def get_category_page(
    slug: str,
    service: CatalogServiceDep,
    page: int = Query(default=1, ge=1, description="Page number (1-based)"),
    per_page: int = Query(default=10, ge=1, alias="perPage", description="Items per page"),
) -> CategoryPageResponse:
    """Get a category and a page of its products.

    Args:
        slug: Category slug.
        service: Catalog service.
        page: Page number.
        per_page: Items per page.

    Returns:
        Category, products on the page, total count and echoed pagination.
    """
    result = await service.get_category_page(slug, page=page, per_page=per_page)
    return CategoryPageResponse(
        category=category_to_response(result.category),
        products=[product_to_response(p) for p in result.products],
        total=result.total,
        page=result.page,
        per_page=result.per_page,
    )


@router.put(
    "/{category_id}",
    response_model=CategoryResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Update category",
)
async def update_category(
    category_id: int,
    request: CategoryUpdateRequest,
    response: Response,
    service: CatalogServiceDep,
) -> CategoryResponse:
    """Rename a category."""
    result = await service.update_category(category_id, title=request.title)
    if result.degraded:
        response.headers[CONSISTENCY_HEADER] = "degraded"
    return category_to_response(result.category)


@router.delete(
    "/{category_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete category",
    description="Delete a category. Linked products are kept and unlinked.",
)
async def delete_category(
    category_id: int,
    response: Response,
    service: CatalogServiceDep,
) -> MessageResponse:
    """Delete a category."""
    result = await service.delete_category(category_id)
    if result.degraded:
        response.headers[CONSISTENCY_HEADER] = "degraded"
    return MessageResponse(message=f"Category id:{category_id} deleted")
