"""Request logging middleware."""

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from reelshelf.utils.logger import get_logger

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log API requests with status and duration."""

    async def dispatch(self, request: Request, call_next):
        # Health checks and docs are too chatty to log
        if not request.url.path.startswith("/api/"):
            return await call_next(request)

        start_time = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "API request completed",
            method=request.method,
            path=request.url.path,
            query=str(request.url.query) or None,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        return response
