"""
Tubely API - FastAPI Application Entry Point.

Initializes the FastAPI application with CORS middleware, the static asset
mount, the v1 routers, and startup/shutdown handlers for logging and the
MongoDB connection.

Run locally with:
    python -m tubely.main
"""

import logging

from datetime import UTC, datetime
from pathlib import Path

import uvicorn

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from tubely import __version__
from tubely.api.v1 import api_router
from tubely.config import get_settings
from tubely.core.database import close_db, init_db
from tubely.utils.logger import setup_logging


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Loading
# =============================================================================

settings = get_settings()


# =============================================================================
# FastAPI Application Initialization
# =============================================================================

app = FastAPI(
    title="Tubely API",
    version=__version__,
    description="Video and thumbnail uploads for Tubely video records",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Startup / Shutdown
# =============================================================================


@app.on_event("startup")
async def startup_event() -> None:
    """
    Configure logging and connect to MongoDB.

    A failed database connection is logged and startup continues so that
    ``/health`` stays reachable; record-backed endpoints fail until it recovers.
    """
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    try:
        await init_db(settings)
    except RuntimeError:
        logger.exception("Failed to initialize database connection")

    logger.info(
        "Tubely API started on %s:%s (thumbnail backend: %s)",
        settings.host,
        settings.port,
        settings.thumbnail_backend,
    )


@app.on_event("shutdown")
async def shutdown_event() -> None:
    await close_db()
    logger.info("Tubely API shutdown complete")


# =============================================================================
# Root and Health Endpoints
# =============================================================================


@app.get("/", tags=["root"])
async def root() -> dict:
    """API metadata and a pointer to the interactive docs."""
    return {
        "name": "Tubely API",
        "version": __version__,
        "description": "Video and thumbnail uploads for Tubely video records",
        "docs": "/docs",
    }


@app.get("/health", tags=["health"])
async def health_check() -> dict:
    """
    Liveness probe for container orchestration.

    Returns immediately without checking MongoDB or S3.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "tubely",
    }


# =============================================================================
# Routers and Static Assets
# =============================================================================

app.include_router(api_router, prefix="/api/v1")

# Locally persisted thumbnails are served from here
Path(settings.assets_root).mkdir(parents=True, exist_ok=True)
app.mount("/assets", StaticFiles(directory=settings.assets_root), name="assets")


if __name__ == "__main__":
    uvicorn.run(
        "tubely.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level,
    )
