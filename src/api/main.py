"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers, static media and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from psycopg_pool import ConnectionPool
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.adapters.repository import (
    InMemoryAccountRepository,
    InMemorySessionRepository,
    PostgresAccountRepository,
    PostgresSessionRepository,
    run_migrations,
)
from src.adapters.storage import LocalPhotoStorage
from src.api.v1 import router as v1_router
from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Multi-step registration actions, login/logout and profile updates",
    },
]

INVALID_REQUEST = "Please fix the errors below."


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates the account/session stores for the configured backend
    - Runs migrations on startup (PostgreSQL)
    - Closes connection pool on shutdown

    Stores already placed on app.state (tests) are left untouched.
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info("Starting application...")
    pool = None

    if getattr(app.state, "accounts", None) is None:
        if settings.storage_backend == "postgres":
            logger.info("Connecting to database...")

            # Create connection pool with explicit sizing
            pool = ConnectionPool(
                conninfo=settings.database_url,
                min_size=settings.pool_min_size,
                max_size=settings.pool_max_size,
            )

            logger.info("Running database migrations...")
            run_migrations(pool)

            app.state.pool = pool
            app.state.accounts = PostgresAccountRepository(pool)
            app.state.sessions = PostgresSessionRepository(pool)
        else:
            logger.info("Using in-memory account and session stores")
            app.state.accounts = InMemoryAccountRepository()
            app.state.sessions = InMemorySessionRepository()

    if getattr(app.state, "photo_storage", None) is None:
        app.state.photo_storage = LocalPhotoStorage(settings.media_dir, settings.media_url)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors (anti-forgery rejections included) as failure envelopes."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "data": {"message": str(exc.detail)}},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies become a 422 envelope keyed by the offending wire field."""
    errors: dict[str, str] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors.setdefault(location[0] if location else "request", error.get("msg", "Invalid value."))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder(
            {"success": False, "data": {"message": INVALID_REQUEST, "errors": errors}}
        ),
    )


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="stepregister",
        description="Five-step registration with shared client/server validation and session login",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Include v1 API routes
    app.include_router(v1_router, prefix="/v1")

    media_dir = Path(settings.media_dir)
    media_dir.mkdir(parents=True, exist_ok=True)
    app.mount(settings.media_url, StaticFiles(directory=media_dir), name="media")

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, str]:
        """
        Health check endpoint with database validation.

        Returns 200 OK if application and database are healthy.
        Raises exception if database connection fails.
        """
        pool = getattr(request.app.state, "pool", None)
        if pool is not None:
            with pool.connection() as conn:
                conn.execute("SELECT 1")

        return {"status": "healthy"}

    return app


app = create_app()
