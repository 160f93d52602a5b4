"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from app.api.admin import router as admin_router
from app.api.categories import router as categories_router
from app.api.health import router as health_router
from app.api.products import router as products_router

__all__ = [
    "admin_router",
    "categories_router",
    "health_router",
    "products_router",
]
