"""
linkclaim HTTP application.

Wires the v1 and auth routers onto one FastAPI app. The lifespan owns the
PostgreSQL pool: it is opened and migrated before the first request and
closed on shutdown. Routes reach it through app.state.pool.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import psycopg
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.api.v1 import router as v1_router
from src.config.settings import get_settings
from src.domain.exceptions import LinkClaimError

logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "v1",
        "description": "Username claims - availability checks and public profiles",
    },
    {
        "name": "auth",
        "description": "Email/password accounts bound to a claimed username",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()

    logger.info(
        "Opening database pool (min=%d, max=%d)", settings.pool_min_size, settings.pool_max_size
    )
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )
    run_migrations(pool)
    app.state.pool = pool

    if not settings.require_email_confirmation:
        logger.warning("Email confirmation disabled; sign ups get a session immediately")
    logger.info("linkclaim ready, emailed links point at %s", settings.site_url)

    try:
        yield
    finally:
        pool.close()
        logger.info("Database pool closed")


app = FastAPI(
    title="linkclaim",
    description="Link-in-bio username claims - Availability checks and account sign up",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.include_router(v1_router, prefix="/v1")


@app.exception_handler(LinkClaimError)
async def unhandled_domain_error(request: Request, exc: LinkClaimError) -> JSONResponse:
    """Domain errors that no route translated become a generic 500."""
    logger.error("Unhandled %s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected error occurred"},
    )


@app.get("/health")
async def health_check(request: Request) -> JSONResponse:
    """Report whether the database answers; 503 when it does not."""
    try:
        with request.app.state.pool.connection(timeout=2) as conn:
            conn.execute("SELECT 1")
    except psycopg.Error as e:
        logger.warning("Health check failed: %s", e)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable"},
        )
    return JSONResponse(content={"status": "healthy"})
