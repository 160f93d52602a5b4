"""Product API endpoints.

Provides endpoints for creating, reading, updating, deleting and
searching products.
"""

from fastapi import APIRouter, Query, Response, status

from app.api.dependencies import CONSISTENCY_HEADER, CacheDep, CatalogServiceDep
from app.api.schemas import (
    ErrorResponse,
    MessageResponse,
    ProductCreateRequest,
    ProductResponse,
    ProductUpdateRequest,
    product_to_response,
)

router = APIRouter(prefix="/products", tags=["Products"])


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Create product",
    description="Create a product, link its categories and index it for search.",
)
async def create_product(
    request: ProductCreateRequest,
    response: Response,
    service: CatalogServiceDep,
) -> ProductResponse:
    """Create a new product.

    Args:
        request: Product creation request.
        response: Outgoing response (for the consistency header).
        service: Catalog service.

    Returns:
        Created product with its categories.
    """
    result = await service.create_product(
        title=request.title,
        description=request.description,
        category_ids=request.category_ids,
    )
    if result.degraded:
        response.headers[CONSISTENCY_HEADER] = "degraded"
    return product_to_response(result.product)


@router.get(
    "",
    response_model=list[ProductResponse],
    summary="List products",
)
async def list_products(service: CatalogServiceDep) -> list[ProductResponse]:
    """List every product with its categories."""
    products = await service.list_products()
    return [product_to_response(p) for p in products]


@router.get(
    "/search",
    response_model=list[ProductResponse],
    responses={503: {"model": ErrorResponse}},
    summary="Search products",
    description="Typo-tolerant search over product titles, best match first.",
)
async def search_products(
    service: CatalogServiceDep,
    q: str = Query(default="", max_length=500, description="Free-text query"),
) -> list[ProductResponse]:
    """Search products by title.

    Args:
        service: Catalog service.
        q: Query text; blank returns no results.

    Returns:
        Matching products in relevance order.
    """
    products = await service.search_products(q)
    return [product_to_response(p) for p in products]


@router.get(
    "/id/{product_id}",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get product by ID",
)
async def get_product(product_id: int, service: CatalogServiceDep) -> ProductResponse:
    """Get a product by ID."""
    product = await service.get_product(product_id)
    return product_to_response(product)


@router.get(
    "/{slug}",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get product by slug",
    description="Get a product by slug. Served from the cache when possible.",
)
async def get_product_by_slug(
    slug: str,
    service: CatalogServiceDep,
    cache: CacheDep,
) -> ProductResponse:
    """Get a product by slug through the read-through cache.

    Args:
        slug: Product slug.
        service: Catalog service.
        cache: Cache for product payloads.

    Returns:
        Product with its categories.
    """
    cached = await cache.get(slug)
    if cached is not None:
        return ProductResponse.model_validate(cached)

    product = await service.get_product_by_slug(slug)
    payload = product_to_response(product)
    if await cache.set(slug, payload.model_dump(mode="json")):
        # A write that committed after our read may have evicted before our set
        current = await service.find_product(product.id)
        if current is None or product_to_response(current) != payload:
            await cache.invalidate(slug)
    return payload


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Update product",
    description="Partially update a product. Omitted fields are left untouched.",
)
async def update_product(
    product_id: int,
    request: ProductUpdateRequest,
    response: Response,
    service: CatalogServiceDep,
) -> ProductResponse:
    """Update a product.

    Args:
        product_id: Product identifier.
        request: Fields to change.
        response: Outgoing response (for the consistency header).
        service: Catalog service.

    Returns:
        Updated product, re-read after the write.
    """
    result = await service.update_product(
        product_id,
        title=request.title,
        description=request.description,
        category_ids=request.category_ids,
    )
    if result.degraded:
        response.headers[CONSISTENCY_HEADER] = "degraded"
    return product_to_response(result.product)


@router.delete(
    "/{product_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete product",
)
async def delete_product(
    product_id: int,
    response: Response,
    service: CatalogServiceDep,
) -> MessageResponse:
    """Delete a product along with its links, document and cache entry."""
    result = await service.delete_product(product_id)
    if result.degraded:
        response.headers[CONSISTENCY_HEADER] = "degraded"
    return MessageResponse(message=f"Product id:{product_id} deleted")
