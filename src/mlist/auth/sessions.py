"""In-memory session store granting password scopes to bearer tokens."""
import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

logger = structlog.get_logger()


@dataclass
class SessionRecord:
    """Time-bounded grant of one or more scopes.

    Attributes:
        id: Opaque session token carried in the client cookie.
        scopes: Root-relative anchor paths unlocked by this session.
        expires_at: Unix time after which the session is invalid.
    """

    id: str
    scopes: set[str] = field(default_factory=set)
    expires_at: int = 0

    def copy(self) -> "SessionRecord":
        return SessionRecord(id=self.id, scopes=set(self.scopes), expires_at=self.expires_at)


class SessionStore:
    """Process-local session map guarded by a single lock.

    Expiry is lazy: reads drop an expired record they touch, and every write
    sweeps all expired records first. No background task is involved.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._sessions: dict[str, SessionRecord] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    async def get_valid(self, session_id: str, now: int) -> SessionRecord | None:
        """Look up an unexpired session.

        Args:
            session_id: Token from the client cookie.
            now: Current unix time.

        Returns:
            A copy of the record, or None if missing or expired.
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if session.expires_at <= now:
                del self._sessions[session_id]
                return None
            return session.copy()

    async def create_or_update(
        self,
        current_id: str | None,
        scope: str,
        ttl_seconds: int,
        now: int,
    ) -> tuple[str, SessionRecord]:
        """Grant a scope, reusing the caller's session when it is still live.

        Args:
            current_id: Session token already held by the client, if any.
            scope: Anchor scope unlocked by a successful login.
            ttl_seconds: Session lifetime; the expiry is reset to the full TTL.
            now: Current unix time.

        Returns:
            Tuple of (session id, copy of the updated record).
        """
        async with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.expires_at <= now]
            for sid in expired:
                del self._sessions[sid]
            if expired:
                logger.debug("sessions_swept", count=len(expired))

            if current_id is not None and current_id in self._sessions:
                session_id = current_id
            else:
                session_id = uuid.uuid4().hex

            session = self._sessions.setdefault(session_id, SessionRecord(id=session_id))
            session.scopes.add(scope)
            session.expires_at = now + ttl_seconds

            return session_id, session.copy()

    async def remove(self, session_id: str) -> None:
        """Delete a session unconditionally."""
        async with self._lock:
            self._sessions.pop(session_id, None)


def is_scope_authorized(session: SessionRecord | None, scope: str) -> bool:
    """Check whether a session covers an anchor scope.

    Matching is exact: a grant for ``a`` does not cover an anchor at ``a/b``.
    """
    return session is not None and scope in session.scopes


def now_unix() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


def unix_to_rfc3339(timestamp: int) -> str:
    """Format a unix timestamp as an RFC 3339 UTC string."""
    return datetime.fromtimestamp(timestamp, tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
