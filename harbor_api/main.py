"""
Harbor FastAPI application.

Entry point for the API server.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from harbor.kernel.events import ChangeHub
from harbor.kernel.importer import TemplateFetcher
from harbor.kernel.service import SpecService
from harbor_api import db
from harbor_api.config import settings
from harbor_api.dependencies import build_storage
from harbor_api.routes import sidebar as sidebar_routes
from harbor_api.routes import templates as template_routes
from harbor_api.routes import ws as ws_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Handles startup and shutdown logic:
    - Configure logging
    - Initialize the database pool (postgres backend only)
    - Build the spec service, change hub and template fetcher
    - Let pending change deliveries finish, then close the database pool
    """
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Startup
    pool = None
    if settings.STORAGE_BACKEND == "postgres":
        pool = await db.init_pool()
        logger.info("Database pool initialized")

    storage = build_storage(settings.STORAGE_BACKEND, settings.PROJECTS_DIR, pool)
    app.state.service = SpecService(storage, ChangeHub())
    app.state.fetcher = TemplateFetcher(timeout=settings.TEMPLATE_FETCH_TIMEOUT)
    logger.info("Harbor started: storage=%s environment=%s", settings.STORAGE_BACKEND, settings.ENVIRONMENT)

    yield

    # Shutdown
    await app.state.service.hub.drain()
    if pool is not None:
        await db.close_pool()
        logger.info("Database pool closed")


app = FastAPI(
    title="Harbor",
    lifespan=lifespan,
)

# Register routes
app.include_router(sidebar_routes.router)
app.include_router(template_routes.router)
app.include_router(ws_routes.router)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {"status": "ok"}
