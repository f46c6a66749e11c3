"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures the storage backend, the local ledger, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.ledger.local import LocalChain
from src.adapters.repository.memory import InMemoryRegistryRepository
from src.adapters.repository.postgres import run_migrations
from src.api.v1 import router as v1_router
from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "KYC Registry API v1 - Customers, businesses, documents and verifications",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates the local ledger at the configured genesis height
    - Creates database connection pool and runs migrations (postgres backend)
    - Creates the shared in-memory store (memory backend)
    - Closes connection pool on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")
    app.state.chain = LocalChain(genesis_height=settings.genesis_height)
    app.state.pool = None

    if settings.storage_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )

        logger.info("Running database migrations...")
        run_migrations(pool)
        app.state.pool = pool
    else:
        logger.info("Using in-memory registry store")
        app.state.repository = InMemoryRegistryRepository()

    logger.info("Application startup complete (registry owner: %s)", settings.registry_owner)

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if app.state.pool is not None:
        app.state.pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="kyc-registry",
    description="Permissioned identity/KYC registry - customers, verifier businesses, "
    "identity documents and verification history",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str | int]:
    """
    Health check endpoint with database validation.

    Returns 200 OK with the current block height if the application
    (and database, when configured) is healthy.
    Raises exception if database connection fails.
    """
    pool = request.app.state.pool
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy", "block_height": request.app.state.chain.current_height()}
