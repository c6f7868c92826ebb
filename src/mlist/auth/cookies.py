"""Session cookie transport and lookup."""
from starlette.requests import Request
from starlette.responses import Response

from mlist.auth.sessions import SessionRecord, SessionStore, now_unix

SESSION_COOKIE_NAME = "mlist_sid"


def read_session_id(request: Request) -> str | None:
    """Return the session token sent by the client, if any."""
    return request.cookies.get(SESSION_COOKIE_NAME) or None


def set_session_cookie(
    response: Response,
    session_id: str,
    ttl_seconds: int,
    secure: bool,
) -> None:
    """Attach the session cookie to a response.

    Args:
        response: Outgoing response.
        session_id: Token to store.
        ttl_seconds: Cookie max-age, equal to the session TTL.
        secure: Whether to set the ``Secure`` flag.
    """
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_id,
        max_age=ttl_seconds,
        path="/",
        secure=secure,
        httponly=True,
        samesite="lax",
    )


async def current_session(request: Request) -> SessionRecord | None:
    """Look up the valid session referenced by the request cookie.

    Args:
        request: Incoming request; the store is taken from app state.

    Returns:
        The unexpired session, or None.
    """
    session_id = read_session_id(request)
    if session_id is None:
        return None
    sessions: SessionStore = request.app.state.sessions
    return await sessions.get_valid(session_id, now_unix())


def clear_session_cookie(response: Response, secure: bool) -> None:
    """Expire the session cookie on the client."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value="",
        max_age=0,
        path="/",
        secure=secure,
        httponly=True,
        samesite="lax",
    )
