"""Service-level routes: health and index."""

import time

from fastapi import APIRouter, Request

from reelshelf import __version__
from reelshelf.api.models import HealthResponse
from reelshelf.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint.

    "degraded" means the library is up but a metadata provider has no API
    key, so lookups will fail with NotConfigured.
    """
    app_state = request.app.state.reelshelf
    service = app_state.service
    uptime = time.time() - app_state.start_time

    checks = {
        "api": True,
        "library": bool(service and service.store.is_loaded),
        "omdb": bool(service and service.omdb_client and service.omdb_client.config.is_configured),
        "tmdb": bool(service and service.tmdb_client and service.tmdb_client.config.is_configured),
    }

    if not checks["library"]:
        status = "unhealthy"
    elif checks["omdb"] and checks["tmdb"]:
        status = "healthy"
    else:
        status = "degraded"

    return HealthResponse(
        status=status,
        version=__version__,
        uptime_seconds=uptime,
        library_loaded=checks["library"],
        checks=checks,
    )


@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "ReelShelf",
        "version": __version__,
        "description": "Personal movie collection library",
        "endpoints": {
            "health": "/health",
            "movies": "/api/v1/movies",
            "collections": "/api/v1/collections",
            "lookup_title": "/api/v1/lookup/title",
            "lookup_barcode": "/api/v1/lookup/barcode",
            "search": "/api/v1/search",
            "popular": "/api/v1/popular",
            "stats": "/api/v1/stats",
            "docs": "/docs",
        },
    }
