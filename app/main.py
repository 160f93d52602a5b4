"""Catalog API main application module.

This module initializes the FastAPI application and configures
core middleware, routers, and startup/shutdown events.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.admin import router as admin_router
from app.api.categories import router as categories_router
from app.api.health import router as health_router
from app.api.middleware import setup_middleware
from app.api.products import router as products_router
from app.catalog.cache import CacheInvalidator
from app.catalog.indexer import IndexSynchronizer
from app.catalog.reindex import bootstrap_search_index, log_bootstrap_outcome
from app.domain.exceptions import (
    AssociationResolutionError,
    DependencyUnavailableError,
    DomainError,
    DuplicateIdentifierError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from app.infrastructure.clients import create_cache_client, create_search_client
from app.infrastructure.config import settings
from app.infrastructure.database import async_session_factory, engine
from app.infrastructure.logging import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    # Startup
    configure_logging()
    logger.info(
        "Starting Catalog API",
        version=settings.api_version,
        debug=settings.debug,
    )

    search_client = create_search_client()
    cache_client = create_cache_client()

    app.state.indexer = IndexSynchronizer(
        search_client,
        settings.elasticsearch_index,
        refresh=settings.elasticsearch_refresh,
        chunk_size=settings.bulk_chunk_size,
    )
    app.state.cache = CacheInvalidator(cache_client, ttl_seconds=settings.cache_ttl_seconds)

    # Reads by id and slug are served while the index bootstraps
    bootstrap_task = asyncio.create_task(
        bootstrap_search_index(
            async_session_factory,
            app.state.indexer,
            force=settings.reindex_on_startup,
            attempts=settings.index_bootstrap_attempts,
            retry_seconds=settings.index_bootstrap_retry_seconds,
        )
    )
    bootstrap_task.add_done_callback(log_bootstrap_outcome)

    yield

    # Shutdown
    logger.info("Shutting down Catalog API")
    bootstrap_task.cancel()
    await search_client.close()
    await cache_client.aclose()
    await engine.dispose()


app = FastAPI(
    title="Catalog API",
    description="Product catalog with search index and cache consistency",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware (request ID, error handling)
setup_middleware(app)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(products_router)
app.include_router(categories_router)
app.include_router(admin_router)


# ============================================================================
# Custom Exception Handlers
# ============================================================================


DOMAIN_ERROR_STATUS: dict[type[DomainError], tuple[int, str]] = {
    ValidationError: (400, "VALIDATION_ERROR"),
    NotFoundError: (404, "NOT_FOUND"),
    DuplicateIdentifierError: (409, "DUPLICATE_IDENTIFIER"),
    AssociationResolutionError: (422, "UNKNOWN_CATEGORY"),
    DependencyUnavailableError: (503, "DEPENDENCY_UNAVAILABLE"),
    InternalError: (500, "INTERNAL_ERROR"),
}


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """Map domain errors to HTTP responses with consistent format."""
    request_id = getattr(request.state, "request_id", None)
    status_code, error_code = DOMAIN_ERROR_STATUS.get(type(exc), (500, "INTERNAL_ERROR"))

    if status_code >= 500:
        logger.error(
            "Domain error",
            path=request.url.path,
            error_code=error_code,
            error=exc.message,
        )

    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "message": exc.message,
            "details": exc.details,
            "request_id": request_id,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent format."""
    request_id = getattr(request.state, "request_id", None)

    # Extract error details from exception
    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error_code", "ERROR")
        message = detail.get("message", str(detail))
        details = detail.get("details", [])
    else:
        error_code = "ERROR"
        message = str(detail)
        details = []

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details,
            "request_id": request_id,
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions with consistent format."""
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unhandled exception in handler",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )

    return JSONResponse(
        status_code=500,
        content={
            "error_code": "INTERNAL_ERROR",
            "message": "An internal error occurred",
            "details": [],
            "request_id": request_id,
        },
    )
