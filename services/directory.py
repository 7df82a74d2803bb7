"""Read-only view of user records used on every authenticated request."""

import asyncio

import logfire

from bson.errors import InvalidId
from pymongo.errors import PyMongoError

from typing import Optional

from schema.security import DirectoryEntry
from security.errors import DirectoryUnavailable


DEFAULT_TIMEOUT_SECONDS = 0.1


class UserDirectory:
    """Loads `{id, email, role, active}` for a subject, bounded by a timeout."""

    def __init__(self, store, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.store = store
        self.timeout = timeout

    async def load(self, user_id: str) -> Optional[DirectoryEntry]:
        """Return the entry, or None when no such user exists.

        Raises:
            DirectoryUnavailable: The store failed or did not answer in time.
        """
        try:
            user = await asyncio.wait_for(self.store.get_user(user_id), timeout=self.timeout)
        except asyncio.CancelledError:
            logfire.warning("User directory lookup cancelled")
            raise
        except InvalidId:
            return None
        except (asyncio.TimeoutError, PyMongoError, OSError) as e:
            logfire.warning("User directory unavailable: {reason}", reason=type(e).__name__)
            raise DirectoryUnavailable() from e

        if user is None:
            return None
        return DirectoryEntry(id=user.id, email=user.email, role=user.role, active=user.active)
