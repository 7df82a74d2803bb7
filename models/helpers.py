"""Contains all models commonly used across different modules."""
from enum import Enum

from datetime import datetime, timezone


ROLE_PREFIX = "ROLE_"


class Role(str, Enum):
    """Enumeration of user roles, stored without the authority prefix."""
    CUSTOMER = "CUSTOMER"
    ARTIST = "ARTIST"
    ADMIN = "ADMIN"

    @property
    def authority(self) -> str:
        """Canonical form compared by the policy gate, e.g. `ROLE_ARTIST`."""
        return f"{ROLE_PREFIX}{self.value}"

    @classmethod
    def parse(cls, value: "str | Role") -> "Role":
        """Accept `ARTIST`, `artist` or `ROLE_ARTIST`.

        Raises:
            ValueError: If the value is not one of the three known roles.
        """
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Unknown role: {value!r}")
        name = value.strip().upper()
        if name.startswith(ROLE_PREFIX):
            name = name[len(ROLE_PREFIX):]
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None


def canonical_role(value: "str | Role") -> str:
    """Return the `ROLE_`-prefixed form of a role."""
    return Role.parse(value).authority


class UserStatus(str, Enum):
    """Moderation status of an account."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    SUSPENDED = "SUSPENDED"
    REJECTED = "REJECTED"


ACTIVE_STATUSES = frozenset({UserStatus.PENDING, UserStatus.APPROVED})


class OrderStatus(str, Enum):
    """Lifecycle of an order."""
    PENDING = "PENDING"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
