"""
Application entry point.

Builds the FastAPI app for the identity service: logging setup, the
database pool lifecycle, error handlers and the versioned router.

Run with ``uvicorn src.api.main:app``.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.api.errors import register_exception_handlers
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "v1",
        "description": "Registration, verification codes, password reset, login "
        "and assessment result access",
    },
]


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open the connection pool and apply migrations before serving.

    The pool lives on ``app.state.pool`` until shutdown.
    """
    settings = get_settings()
    logger.info(
        "Starting identity service (code TTL %ss, %d attempts per code)",
        settings.code_ttl_seconds,
        settings.max_attempts,
    )

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )
    run_migrations(pool)
    app.state.pool = pool
    logger.info("Database ready (pool %d-%d)", settings.pool_min_size, settings.pool_max_size)

    try:
        yield
    finally:
        pool.close()
        logger.info("Database connection pool closed")


def create_app() -> FastAPI:
    configure_logging(get_settings())

    application = FastAPI(
        title="coursefinder-identity",
        description="Account verification and result access API for the CourseFinder assessment service",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    register_exception_handlers(application)
    application.include_router(v1_router, prefix="/v1")

    @application.get("/health")
    async def health_check(request: Request) -> dict[str, str]:
        """Report healthy only if the database answers. Failures surface as 500."""
        with request.app.state.pool.connection() as conn:
            conn.execute("SELECT 1")
        return {"status": "healthy"}

    return application


app = create_app()
