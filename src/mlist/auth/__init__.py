"""Sessions, login throttling and cookie transport."""

from mlist.auth.cookies import (
    SESSION_COOKIE_NAME,
    clear_session_cookie,
    current_session,
    read_session_id,
    set_session_cookie,
)
from mlist.auth.limiter import LoginAttempt, LoginRateLimiter, limiter_key
from mlist.auth.sessions import (
    SessionRecord,
    SessionStore,
    is_scope_authorized,
    now_unix,
    unix_to_rfc3339,
)
