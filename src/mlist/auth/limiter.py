"""Per-client, per-scope login failure throttling."""
import asyncio
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()


@dataclass
class LoginAttempt:
    """Failure state for one (client, scope) key."""

    failures: int = 0
    blocked_until: int | None = None


def limiter_key(client_ip: str, scope: str) -> str:
    """Build the limiter key for a client and an anchor scope."""
    return f"{client_ip}:{scope}"


class LoginRateLimiter:
    """Fixed-window failure counter with a timed block.

    After ``max_failures`` consecutive failures a key is blocked for
    ``block_seconds``. A success forgets the key entirely.

    Attributes:
        max_failures: Failures allowed before blocking.
        block_seconds: Length of a block.
    """

    def __init__(self, max_failures: int = 5, block_seconds: int = 60) -> None:
        """Initialize limiter.

        Args:
            max_failures: Failures allowed before blocking.
            block_seconds: Length of a block in seconds.
        """
        self.max_failures = max_failures
        self.block_seconds = block_seconds
        self._attempts: dict[str, LoginAttempt] = {}
        self._lock = asyncio.Lock()

    async def blocked_until(self, key: str, now: int) -> int | None:
        """Return the block deadline if the key is currently blocked.

        An expired block is cleared along with the failure count.

        Args:
            key: Limiter key from :func:`limiter_key`.
            now: Current unix time.

        Returns:
            Unix time when the block ends, or None.
        """
        async with self._lock:
            entry = self._attempts.get(key)
            if entry is None or entry.blocked_until is None:
                return None
            if entry.blocked_until > now:
                return entry.blocked_until
            entry.blocked_until = None
            entry.failures = 0
            return None

    async def record_failure(self, key: str, now: int) -> int | None:
        """Count a failed attempt.

        Args:
            key: Limiter key from :func:`limiter_key`.
            now: Current unix time.

        Returns:
            The block deadline if the key is (or just became) blocked,
            otherwise None.
        """
        async with self._lock:
            entry = self._attempts.setdefault(key, LoginAttempt())

            if entry.blocked_until is not None:
                if entry.blocked_until > now:
                    return entry.blocked_until
                entry.blocked_until = None
                entry.failures = 0

            entry.failures += 1
            if entry.failures >= self.max_failures:
                entry.blocked_until = now + self.block_seconds
                entry.failures = 0
                logger.warning(
                    "login_blocked",
                    key=key,
                    blocked_until=entry.blocked_until,
                )
                return entry.blocked_until

            return None

    async def record_success(self, key: str) -> None:
        """Forget all prior failures for a key."""
        async with self._lock:
            self._attempts.pop(key, None)
