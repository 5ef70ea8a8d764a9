"""FastAPI application for the ReelShelf library server."""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from reelshelf import __version__
from reelshelf.api import library_routes, routes
from reelshelf.api.middleware import RequestLoggingMiddleware
from reelshelf.config import Config
from reelshelf.core.library import LibraryService, open_library
from reelshelf.core.store import DuplicateIDError, RecordNotFoundError
from reelshelf.metadata.barcode import InvalidBarcodeError
from reelshelf.metadata.errors import (
    InvalidResponseError,
    NetworkError,
    NotConfiguredError,
    NotFoundError,
    ProviderError,
)
from reelshelf.utils.logger import get_logger

logger = get_logger(__name__)

_PROVIDER_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    NotConfiguredError: status.HTTP_503_SERVICE_UNAVAILABLE,
    InvalidResponseError: status.HTTP_502_BAD_GATEWAY,
    NetworkError: status.HTTP_502_BAD_GATEWAY,
}


class AppState:
    """Application state container."""

    def __init__(self, config: Config, service: Optional[LibraryService] = None):
        self.config = config
        self.start_time = time.time()
        self.service = service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the library on startup and close its clients on shutdown."""
    app_state: AppState = app.state.reelshelf

    logger.info("Starting ReelShelf server", version=__version__)

    if app_state.service is None:
        app_state.service = open_library(app_state.config)

    yield

    logger.info("Shutting down ReelShelf server")
    await app_state.service.close()
    logger.info("Shutdown complete")


def create_app(config: Config, service: Optional[LibraryService] = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: Application configuration
        service: Pre-built library service; opened from config at startup if omitted

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="ReelShelf",
        description="Personal movie collection library",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)

    app.state.reelshelf = AppState(config, service)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(
            "Request validation failed",
            path=request.url.path,
            method=request.method,
            errors=exc.errors(),
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "status": "error",
                "message": "Invalid request",
                "errors": jsonable_errors(exc),
            },
        )

    @app.exception_handler(ProviderError)
    async def provider_exception_handler(request: Request, exc: ProviderError):
        code = _PROVIDER_STATUS.get(type(exc), status.HTTP_502_BAD_GATEWAY)
        logger.warning(
            "Provider lookup failed",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=code,
            content={"status": "error", "error": type(exc).__name__, "message": str(exc)},
        )

    @app.exception_handler(DuplicateIDError)
    async def duplicate_exception_handler(request: Request, exc: DuplicateIDError):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"status": "error", "error": "DuplicateID", "message": str(exc)},
        )

    @app.exception_handler(RecordNotFoundError)
    async def not_found_exception_handler(request: Request, exc: RecordNotFoundError):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"status": "error", "error": "NotFound", "message": str(exc)},
        )

    @app.exception_handler(InvalidBarcodeError)
    async def barcode_exception_handler(request: Request, exc: InvalidBarcodeError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"status": "error", "error": "InvalidBarcode", "message": str(exc)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch all unhandled exceptions."""
        logger.error(
            "Unhandled exception in request handler",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "error", "message": "Internal server error"},
        )

    app.include_router(routes.router)
    app.include_router(library_routes.router)

    logger.info("FastAPI application created", version=__version__, api_port=config.api.port)

    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without the non-serializable ``ctx`` payloads."""
    return [{k: v for k, v in error.items() if k != "ctx"} for error in exc.errors()]
