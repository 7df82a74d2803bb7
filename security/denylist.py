"""
Shared token denylist backed by Redis.

Entries are stored as `BLACKLIST:<token>` with value `"true"` and a TTL equal
to the token's remaining lifetime, so an entry never disappears before the
token would have expired on its own.
"""

import asyncio
import logfire

from redis.asyncio import Redis
from redis.exceptions import RedisError

from security.errors import DenylistUnavailable, RevocationUnavailable


KEY_PREFIX = "BLACKLIST:"
DEFAULT_TIMEOUT_SECONDS = 0.1

unavailable_counter = logfire.metric_counter(
    "denylist_unavailable",
    unit="1",
    description="Denylist reads or writes that failed or timed out",
)


def _caller_cancelled() -> bool:
    """True when the running task itself is being cancelled.

    A Redis call cancelled underneath us (dropped connection, pool shutdown)
    is an outage; a cancellation aimed at the caller must keep propagating.
    """
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


class Denylist:
    """Best-effort revocation list.

    Reads raise `DenylistUnavailable` and callers fail open. Writes raise
    `RevocationUnavailable` so a lost revocation is always reported, a
    cancelled one included.
    """

    def __init__(self, redis_client: Redis, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.redis = redis_client
        self.timeout = timeout

    @staticmethod
    def key(token: str) -> str:
        return f"{KEY_PREFIX}{token}"

    async def revoke(self, token: str, ttl_seconds: int) -> None:
        """Insert a token for `ttl_seconds` (at least one second).

        Raises:
            RevocationUnavailable: Redis failed or did not answer in time.
        """
        ttl_seconds = max(1, int(ttl_seconds))
        try:
            await asyncio.wait_for(
                self.redis.set(self.key(token), "true", ex=ttl_seconds),
                timeout=self.timeout,
            )
        except asyncio.CancelledError as e:
            self._record_unavailable("revoke", "cancelled")
            if _caller_cancelled():
                raise
            raise RevocationUnavailable() from e
        except (asyncio.TimeoutError, RedisError, OSError) as e:
            self._record_unavailable("revoke", type(e).__name__)
            raise RevocationUnavailable() from e

    async def is_revoked(self, token: str) -> bool:
        """Check membership.

        Raises:
            DenylistUnavailable: Redis failed or did not answer in time.
        """
        try:
            found = await asyncio.wait_for(self.redis.exists(self.key(token)), timeout=self.timeout)
        except asyncio.CancelledError as e:
            self._record_unavailable("is_revoked", "cancelled")
            if _caller_cancelled():
                raise
            raise DenylistUnavailable() from e
        except (asyncio.TimeoutError, RedisError, OSError) as e:
            self._record_unavailable("is_revoked", type(e).__name__)
            raise DenylistUnavailable() from e
        return bool(found)

    async def ping(self) -> bool:
        try:
            return bool(await asyncio.wait_for(self.redis.ping(), timeout=self.timeout))
        except (asyncio.TimeoutError, RedisError, OSError):
            return False

    async def close(self) -> None:
        await self.redis.aclose()

    def _record_unavailable(self, operation: str, reason: str) -> None:
        unavailable_counter.add(1, {"operation": operation})
        logfire.warning(
            "Denylist unavailable during {operation}: {reason}",
            operation=operation,
            reason=reason,
        )
