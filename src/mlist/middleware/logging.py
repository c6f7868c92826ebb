"""Request logging middleware."""
import time
import uuid
from collections.abc import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"

EXCLUDED_PATHS = frozenset({
    "/api/health/live",
    "/api/health/ready",
})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Emits one ``http_request`` line per request and tags its context.

    Every request gets a short id, bound into structlog's context so that
    log lines from route code carry it, and echoed back in
    ``X-Request-ID``. Health probes are not logged. Query strings are left
    out since they carry browsed paths.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request and log details.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware or route handler.

        Returns:
            HTTP response from handler.
        """
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        request_id = uuid.uuid4().hex[:12]
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "http_request",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            ranged="range" in request.headers,
            duration_ms=round(duration_ms, 2),
            client=request.client.host if request.client else None,
        )

        return response
