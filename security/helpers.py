"""Contains all security related helper functions and FastAPI dependencies
"""
from fastapi import Depends, Request

from typing import Annotated, Optional, TYPE_CHECKING

from schema.security import Principal
from security.errors import Forbidden, Unauthenticated
from security.policy import Owners

if TYPE_CHECKING:
    from services.auth import AuthService


BEARER_PREFIX = "Bearer "


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    """Return the token of a `Bearer <token>` header value, None otherwise."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


def get_optional_principal(request: Request) -> Optional[Principal]:
    """The principal attached by the authentication middleware, if any."""
    return getattr(request.state, "principal", None)


def get_current_principal(request: Request) -> Principal:
    """Get the principal of the current request.

    Raises:
        Unauthenticated: No principal is attached to the request.
    """
    principal = get_optional_principal(request)
    if principal is None or not principal.active:
        raise Unauthenticated()
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def enforce_ownership(request: Request, owners: Owners) -> Principal:
    """Apply the ownership predicate of the matched route policy.

    Handlers call this once they have loaded the resource and know who owns it.

    Raises:
        Unauthenticated: No principal is attached to the request.
        Forbidden: The principal neither owns the resource nor is an admin.
    """
    principal = get_current_principal(request)
    gate = request.app.state.policy_gate
    policy = getattr(request.state, "route_policy", None)
    predicate = policy.owner_check if policy is not None else None

    if not gate.authorize_owner(principal, owners, predicate):
        raise Forbidden()
    return principal


def get_auth_service(request: Request) -> "AuthService":
    return request.app.state.auth_service


def get_store(request: Request):
    return request.app.state.store
