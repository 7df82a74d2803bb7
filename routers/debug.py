from fastapi import APIRouter

from schema.security import DebugAuthResponse

from security.helpers import CurrentPrincipal


router = APIRouter(
    prefix="/api/debug",
    tags=["Debug"],
)


@router.get("/auth", response_model=DebugAuthResponse)
async def debug_auth(principal: CurrentPrincipal):
    """Echoes the principal attached to the request."""
    return DebugAuthResponse(
        subject=principal.subject,
        email=principal.email,
        role=principal.role,
        authorities=[principal.role],
        active=principal.active,
    )
