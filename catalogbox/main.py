"""FastAPI application entry point for CatalogBox."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from catalogbox import __version__
from catalogbox.config import settings
from catalogbox.database import close_db, init_db
from catalogbox.routers import catalog
from catalogbox.store import reset_catalog_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Ensure data directories exist
    settings.import_dir.mkdir(parents=True, exist_ok=True)
    settings.export_dir.mkdir(parents=True, exist_ok=True)

    await init_db()
    logger.info("Connected to MongoDB database '%s'", settings.mongodb_database)

    yield

    reset_catalog_store()
    await close_db()


def create_app(use_lifespan: bool = True) -> FastAPI:
    """Build the application.

    Args:
        use_lifespan: Connect to MongoDB on startup. Tests that inject
            their own store turn this off.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Product catalog import and export from spreadsheets",
        version=__version__,
        lifespan=lifespan if use_lifespan else None,
    )

    # Only allow origins from the whitelist; empty list means same-origin only
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "DELETE"],
            allow_headers=["Content-Type"],
            max_age=600,  # Cache preflight for 10 minutes
        )

    @app.get("/health", tags=["Health"])
    async def health_check() -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse(
            content={
                "status": "healthy",
                "version": __version__,
                "app_name": settings.app_name,
            }
        )

    app.include_router(catalog.router, prefix="/api/catalog", tags=["Catalog"])
    return app


app = create_app()
