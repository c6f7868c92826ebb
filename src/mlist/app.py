"""FastAPI application factory and lifespan management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import Match

from mlist import __version__
from mlist.auth import LoginRateLimiter, SessionStore
from mlist.config import Settings
from mlist.errors import (
    ApiError,
    BadRequestError,
    InternalError,
    MethodNotAllowedError,
    NotFoundError,
)
from mlist.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from mlist.routes import auth, files, health

logger = structlog.get_logger()

HTTP_ERROR_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    416: "INVALID_RANGE",
    429: "RATE_LIMITED",
}

API_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log startup and shutdown of the server.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings: Settings = app.state.settings
    logger.info(
        "api_startup",
        host=settings.host,
        port=settings.port,
        root_dir=str(settings.root_dir),
    )
    try:
        yield
    finally:
        logger.info("api_shutdown", sessions=len(app.state.sessions))


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render an ApiError as ``{code, message}``.

    Only server faults are logged as errors; everything else is an expected
    client-facing outcome.
    """
    if exc.is_server_fault:
        logger.error(
            "internal_error",
            code=exc.code,
            error=exc.message,
            path=request.url.path,
            exc_info=exc.__cause__,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation failures as a bad-request body."""
    error = BadRequestError("Invalid request.")
    return JSONResponse(status_code=error.status_code, content=error.to_body())


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render framework HTTP errors (unknown routes, bad methods) uniformly."""
    code = HTTP_ERROR_CODES.get(exc.status_code, "INTERNAL_ERROR")
    message = exc.detail if isinstance(exc.detail, str) else "Request failed."
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": code, "message": message},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log an unexpected failure and hide its details from the client."""
    logger.exception("unhandled_error", path=request.url.path, exc_info=exc)
    error = InternalError("Internal server error.")
    return JSONResponse(status_code=error.status_code, content=error.to_body())


async def api_not_found(request: Request) -> None:
    """Catch-all for unknown ``/api`` routes.

    A path served by another route under a different method is reported as
    405 rather than 404, since this route would otherwise shadow it.
    """
    for route in request.app.router.routes:
        if getattr(route, "endpoint", None) is api_not_found:
            continue
        match, _ = route.matches(request.scope)
        if match is Match.PARTIAL:
            raise MethodNotAllowedError("Method not allowed.")
    raise NotFoundError("API route not found.")


def mount_frontend(app: FastAPI, settings: Settings) -> None:
    """Serve built frontend assets at ``/`` when they are present."""
    if settings.frontend_dir.is_dir():
        app.mount(
            "/",
            StaticFiles(directory=settings.frontend_dir, html=True),
            name="frontend",
        )
    else:
        logger.warning("frontend_not_found", serving="api_only")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Factory function to create configured FastAPI application.

    Session and rate-limit stores are created here, once per application,
    and shared by every request through ``app.state``.

    Args:
        settings: Configuration instance. Creates default if None.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="mlist",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.sessions = SessionStore()
    app.state.login_limiter = LoginRateLimiter(
        max_failures=settings.login_max_failures,
        block_seconds=settings.login_block_seconds,
    )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        SecurityHeadersMiddleware,
        content_security_policy=settings.content_security_policy,
    )

    app.include_router(health.router)
    app.include_router(files.router)
    app.include_router(auth.router)
    for path in ("/api", "/api/{rest:path}"):
        app.add_api_route(
            path,
            api_not_found,
            methods=API_METHODS,
            include_in_schema=False,
        )

    mount_frontend(app, settings)

    return app
