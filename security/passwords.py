"""Password hashing and password policy.

bcrypt is CPU bound, so hashing and verification run on worker threads
behind a capacity limiter that bounds how many run at once.
"""

import re

import anyio
from anyio import to_thread

from passlib.context import CryptContext

from typing import List


SPECIAL_CHARACTERS = r"!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?"
MIN_PASSWORD_LENGTH = 8

PASSWORD_RULES = (
    (lambda p: len(p) >= MIN_PASSWORD_LENGTH, f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"),
    (lambda p: re.search(r"[A-Z]", p) is not None, "Password must contain at least one uppercase letter"),
    (lambda p: re.search(r"[a-z]", p) is not None, "Password must contain at least one lowercase letter"),
    (lambda p: re.search(r"\d", p) is not None, "Password must contain at least one digit"),
    (
        lambda p: re.search(f"[{SPECIAL_CHARACTERS}]", p) is not None,
        "Password must contain at least one special character",
    ),
)


def password_violations(password: str) -> List[str]:
    """Return every rule the password breaks, empty when it is acceptable."""
    password = password or ""
    return [message for check, message in PASSWORD_RULES if not check(password)]


class PasswordHasher:
    """bcrypt via passlib, dispatched to a bounded thread pool."""

    def __init__(self, rounds: int = 12, max_workers: int = 4):
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)
        self.max_workers = max_workers
        self._limiter = None

    @property
    def limiter(self) -> anyio.CapacityLimiter:
        # Created on first use, inside the event loop
        if self._limiter is None:
            self._limiter = anyio.CapacityLimiter(self.max_workers)
        return self._limiter

    async def hash(self, password: str) -> str:
        return await to_thread.run_sync(self.pwd_context.hash, password, limiter=self.limiter)

    async def verify(self, password: str, hashed_password: str) -> bool:
        """Constant-time comparison of `password` against a stored hash."""
        try:
            return await to_thread.run_sync(
                self.pwd_context.verify, password, hashed_password, limiter=self.limiter
            )
        except ValueError:
            # Unknown or corrupt hash format
            return False

    async def dummy_verify(self) -> None:
        """Burn the same time as a real verification, for unknown accounts."""
        await to_thread.run_sync(self.pwd_context.dummy_verify, limiter=self.limiter)
