"""Login, logout and session introspection endpoints."""
import asyncio
import secrets
import stat
from pathlib import Path

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from mlist.auth import (
    LoginRateLimiter,
    SessionStore,
    clear_session_cookie,
    current_session,
    limiter_key,
    now_unix,
    read_session_id,
    set_session_cookie,
    unix_to_rfc3339,
)
from mlist.config import Settings
from mlist.errors import (
    BadRequestError,
    RateLimitedError,
    UnauthorizedError,
    from_os_error,
)
from mlist.storage import (
    ensure_not_marker_path,
    find_private_anchor,
    normalize_relative_path,
    resolve_existing_path,
)
from mlist.storage.schemas import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MeResponse,
    OkResponse,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["auth"])


def _rate_limited(until: int, now: int) -> RateLimitedError:
    remaining = max(until - now, 0)
    return RateLimitedError(f"Too many login failures. Retry in {remaining} seconds.")


def _passwords_match(submitted: str, expected: str) -> bool:
    return secrets.compare_digest(submitted.encode("utf-8"), expected.encode("utf-8"))


def _is_dir(path: Path) -> bool:
    try:
        return stat.S_ISDIR(path.stat().st_mode)
    except OSError as e:
        raise from_os_error(e, "path") from e


@router.post(
    "/auth/login",
    response_model=LoginResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
    summary="Unlock a password-protected path",
)
async def login(request: Request, payload: LoginRequest) -> JSONResponse:
    """Validate a password against the nearest anchor of a path.

    Attempts are throttled per client address and anchor scope. On success
    the scope is added to the caller's session, or to a new one.

    Args:
        request: FastAPI request (provides access to app state).
        payload: Target path and submitted password.

    Returns:
        Login confirmation with the unlocked scope and session expiry,
        carrying the session cookie.

    Raises:
        BadRequestError: If the path is invalid or not protected.
        RateLimitedError: If the client is blocked for this scope.
        UnauthorizedError: If the password is wrong.
    """
    settings: Settings = request.app.state.settings
    sessions: SessionStore = request.app.state.sessions
    limiter: LoginRateLimiter = request.app.state.login_limiter
    root = settings.root_dir

    relative_path = normalize_relative_path(payload.path)
    ensure_not_marker_path(relative_path)

    resolved = await resolve_existing_path(root, relative_path)
    is_dir = await asyncio.to_thread(_is_dir, resolved)

    anchor = await find_private_anchor(root, resolved, is_dir)
    if anchor is None:
        raise BadRequestError("The target path is public.")

    now = now_unix()
    client_ip = request.client.host if request.client else "unknown"
    key = limiter_key(client_ip, anchor.scope)

    until = await limiter.blocked_until(key, now)
    if until is not None:
        raise _rate_limited(until, now)

    if not _passwords_match(payload.password, anchor.password):
        logger.warning("login_failed", ip=client_ip, scope=anchor.scope)
        until = await limiter.record_failure(key, now)
        if until is not None:
            raise _rate_limited(until, now)
        raise UnauthorizedError("Invalid password.")

    await limiter.record_success(key)

    session_id, session = await sessions.create_or_update(
        read_session_id(request),
        anchor.scope,
        settings.session_ttl_seconds,
        now,
    )

    logger.info(
        "login_succeeded",
        ip=client_ip,
        scope=anchor.scope,
        marker=anchor.marker_file,
    )

    body = LoginResponse(
        ok=True,
        scope=anchor.scope,
        expires_at=unix_to_rfc3339(session.expires_at),
    )
    response = JSONResponse(content=body.model_dump(by_alias=True))
    set_session_cookie(
        response,
        session_id,
        settings.session_ttl_seconds,
        settings.secure_cookies,
    )
    return response


@router.post("/auth/logout", response_model=OkResponse, summary="End the session")
async def logout(request: Request) -> JSONResponse:
    """Remove the caller's session and expire its cookie.

    Returns:
        ``{"ok": true}`` whether or not a session existed.
    """
    settings: Settings = request.app.state.settings
    sessions: SessionStore = request.app.state.sessions

    session_id = read_session_id(request)
    if session_id is not None:
        await sessions.remove(session_id)

    response = JSONResponse(content=OkResponse(ok=True).model_dump())
    clear_session_cookie(response, settings.secure_cookies)
    return response


@router.get("/me", response_model=MeResponse, summary="Describe the current session")
async def me(request: Request) -> MeResponse:
    """Report whether the caller holds a valid session and what it unlocks.

    Returns:
        Authentication flag, sorted scopes and expiry.
    """
    session = await current_session(request)
    if session is None:
        return MeResponse(authenticated=False, scopes=[])

    return MeResponse(
        authenticated=True,
        scopes=sorted(session.scopes),
        expires_at=unix_to_rfc3339(session.expires_at),
    )
