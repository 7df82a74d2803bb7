"""Static route to role policy.

The table is evaluated before any handler runs. Matching rules:

- an exact literal pattern beats a parameterised one, which beats a `/**` prefix;
- among parameterised patterns the one with more literal segments wins,
  among prefixes the longest wins;
- at equal specificity a method-restricted policy beats an any-method one.

Routes that match nothing require an authenticated caller.
"""

import re

from dataclasses import dataclass, field
from enum import Enum

from typing import Callable, Collection, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union

from models.helpers import Role
from schema.security import Principal


SEGMENT_PARAMETER = re.compile(r"^[A-Za-z0-9_-]+$")

CUSTOMER = Role.CUSTOMER.authority
ARTIST = Role.ARTIST.authority
ADMIN = Role.ADMIN.authority


class Rule(str, Enum):
    PUBLIC = "PUBLIC"
    AUTHENTICATED = "AUTHENTICATED"
    ROLES = "ROLES"


class Decision(str, Enum):
    ALLOW = "ALLOW"
    DENY_ANONYMOUS = "DENY_ANONYMOUS"  # 401
    DENY_ROLE = "DENY_ROLE"  # 403


class PatternKind(int, Enum):
    PREFIX = 1
    PARAMETERISED = 2
    LITERAL = 3


def normalize_path(path: str) -> str:
    if len(path) > 1 and path.endswith("/"):
        return path.rstrip("/") or "/"
    return path


@dataclass(frozen=True)
class RoutePolicy:
    """One row of the route table. Empty `methods` means any method."""

    pattern: str
    rule: Rule = Rule.AUTHENTICATED
    methods: FrozenSet[str] = frozenset()
    roles: FrozenSet[str] = frozenset()
    owner_check: Optional[str] = None
    kind: PatternKind = field(init=False)
    segments: Tuple[str, ...] = field(init=False)

    def __post_init__(self):
        if self.pattern.endswith("/**"):
            kind = PatternKind.PREFIX
            base = self.pattern[:-3] or "/"
            segments = (base,)
        elif "{" in self.pattern:
            kind = PatternKind.PARAMETERISED
            segments = tuple(self.pattern.strip("/").split("/"))
        else:
            kind = PatternKind.LITERAL
            segments = (normalize_path(self.pattern),)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "segments", segments)
        object.__setattr__(self, "methods", frozenset(m.upper() for m in self.methods))
        if self.rule is Rule.ROLES and not self.roles:
            raise ValueError(f"Policy {self.pattern} requires at least one role")

    def matches_method(self, method: str) -> bool:
        if not self.methods:
            return True
        method = method.upper()
        return method in self.methods or (method == "HEAD" and "GET" in self.methods)

    def matches_path(self, path: str) -> bool:
        if self.kind is PatternKind.LITERAL:
            return path == self.segments[0]
        if self.kind is PatternKind.PREFIX:
            base = self.segments[0]
            return base == "/" or path == base or path.startswith(base + "/")
        parts = path.strip("/").split("/")
        if len(parts) != len(self.segments):
            return False
        for expected, actual in zip(self.segments, parts):
            if expected.startswith("{") and expected.endswith("}"):
                if not SEGMENT_PARAMETER.match(actual):
                    return False
            elif expected != actual:
                return False
        return True

    @property
    def specificity(self) -> Tuple[int, int, int]:
        if self.kind is PatternKind.PARAMETERISED:
            weight = sum(1 for s in self.segments if not s.startswith("{"))
        else:
            weight = len(self.segments[0])
        return (self.kind.value, weight, 1 if self.methods else 0)


def public(pattern: str, *methods: str) -> RoutePolicy:
    return RoutePolicy(pattern, Rule.PUBLIC, frozenset(methods))


def authenticated(pattern: str, *methods: str, owner_check: Optional[str] = None) -> RoutePolicy:
    return RoutePolicy(pattern, Rule.AUTHENTICATED, frozenset(methods), owner_check=owner_check)


def roles(pattern: str, allowed: Iterable[str], *methods: str, owner_check: Optional[str] = None) -> RoutePolicy:
    return RoutePolicy(pattern, Rule.ROLES, frozenset(methods), frozenset(allowed), owner_check)


ROUTE_POLICIES: Tuple[RoutePolicy, ...] = (
    public("/"),
    public("/health"),
    public("/api/health/**"),
    public("/api/auth/login"),
    public("/api/auth/register"),
    # Refresh and logout read their tokens from the body and header themselves
    public("/api/auth/refresh"),
    public("/api/auth/logout"),
    public("/docs"),
    public("/docs/**"),
    public("/redoc"),
    public("/openapi.json"),
    public("/swagger-ui.html"),
    public("/swagger-ui/**"),
    public("/api-docs/**"),
    public("/v3/api-docs/**"),
    public("/uploads/**", "GET"),
    public("/api/artworks", "GET"),
    public("/api/artworks/{id}", "GET"),
    public("/api/artists/**", "GET"),
    public("/api/v1/artwork-query/**", "GET"),
    public("/api/reviews/artwork/{id}", "GET"),
    roles("/api/reviews", [CUSTOMER], "POST", owner_check="artwork_purchaser"),
    roles("/api/reviews/artist/{id}", [ARTIST, ADMIN], "GET", owner_check="self_or_admin"),
    roles("/api/artworks/my-artworks", [ARTIST], "GET"),
    roles("/api/artworks", [ARTIST, ADMIN], "POST"),
    roles("/api/artworks/{id}", [ARTIST, ADMIN], "PUT", "DELETE", owner_check="artwork_owner"),
    roles("/api/cart/**", [CUSTOMER]),
    roles("/api/wishlist/**", [CUSTOMER]),
    roles("/api/orders/**", [CUSTOMER, ARTIST]),
    roles("/api/orders/{id}", [CUSTOMER, ARTIST], "GET", owner_check="order_owner"),
    authenticated("/api/users/**"),
    authenticated("/api/users/profile"),
    authenticated("/api/users/password"),
    authenticated("/api/users/auth-check"),
    authenticated("/api/users/{id}", "PUT", owner_check="self_or_admin"),
    roles("/api/dashboard/artist/**", [ARTIST]),
    roles("/api/dashboard/admin/**", [ADMIN]),
    roles("/api/dashboard/customer/**", [CUSTOMER]),
    roles("/api/admin/**", [ADMIN]),
    authenticated("/api/auth/verify"),
    authenticated("/api/debug/**"),
)


Owners = Union[str, Collection[str]]
OwnershipPredicate = Callable[[Principal, Owners], bool]


def _as_set(owners: Owners) -> FrozenSet[str]:
    if isinstance(owners, str):
        return frozenset({owners})
    return frozenset(owners)


def is_subject_owner(principal: Principal, owners: Owners) -> bool:
    """True when the principal is (one of) the owning subject(s)."""
    return principal.subject in _as_set(owners)


OWNERSHIP_PREDICATES: Dict[str, OwnershipPredicate] = {
    # the artist who published the artwork
    "artwork_owner": is_subject_owner,
    # the customer who placed the order, or an artist with a line in it
    "order_owner": is_subject_owner,
    "self_or_admin": is_subject_owner,
    # a customer with a non-cancelled order for the artwork
    "artwork_purchaser": is_subject_owner,
}


class PolicyGate:
    """Decides ALLOW / DENY_ANONYMOUS / DENY_ROLE from method, path and principal."""

    def __init__(
        self,
        policies: Iterable[RoutePolicy] = ROUTE_POLICIES,
        predicates: Mapping[str, OwnershipPredicate] = OWNERSHIP_PREDICATES,
    ):
        self.policies: Tuple[RoutePolicy, ...] = tuple(policies)
        self.predicates: Mapping[str, OwnershipPredicate] = dict(predicates)
        self._check_table()

    def _check_table(self) -> None:
        seen = {}
        for policy in self.policies:
            if policy.owner_check and policy.owner_check not in self.predicates:
                raise ValueError(f"Unknown ownership predicate {policy.owner_check!r} on {policy.pattern}")
            for method in policy.methods or {"*"}:
                key = (policy.pattern, method)
                if key in seen:
                    raise ValueError(f"Duplicate route policy for {method} {policy.pattern}")
                seen[key] = policy

    def match(self, method: str, path: str) -> Optional[RoutePolicy]:
        path = normalize_path(path)
        candidates = [p for p in self.policies if p.matches_method(method) and p.matches_path(path)]
        if not candidates:
            return None
        return max(candidates, key=lambda p: p.specificity)

    def evaluate(self, method: str, path: str, principal: Optional[Principal]) -> Decision:
        policy = self.match(method, path)
        rule = policy.rule if policy else Rule.AUTHENTICATED

        if rule is Rule.PUBLIC:
            return Decision.ALLOW
        if principal is None or not principal.active:
            return Decision.DENY_ANONYMOUS
        if rule is Rule.AUTHENTICATED:
            return Decision.ALLOW
        return Decision.ALLOW if principal.role in policy.roles else Decision.DENY_ROLE

    def authorize_owner(
        self,
        principal: Principal,
        owners: Owners,
        predicate: Optional[str] = None,
    ) -> bool:
        """Run an ownership predicate. Admins always pass."""
        if principal.is_admin:
            return True
        check = self.predicates.get(predicate) if predicate else is_subject_owner
        if check is None:
            raise ValueError(f"Unknown ownership predicate {predicate!r}")
        return check(principal, owners)
