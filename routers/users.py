""" User router for handling profile related endpoints.
"""

import logfire

from fastapi import APIRouter, Depends, Request

from typing import Annotated

from schema.users import PasswordChangeRequest, UserResponse, UserUpdateRequest
from schema.security import DebugAuthResponse, MessageResponse

from security.errors import ResourceNotFound
from security.helpers import CurrentPrincipal, enforce_ownership, get_auth_service, get_store

from services.auth import AuthService


router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
)


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    principal: CurrentPrincipal,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Returns the profile of the authenticated user."""
    user = await auth_service.profile(principal)
    return UserResponse.from_record(user)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    payload: UserUpdateRequest,
    principal: CurrentPrincipal,
    store=Depends(get_store),
):
    """Updates the caller's profile. Omitted fields are left unchanged."""
    user = await store.update_user(principal.subject, **payload.model_dump(exclude_unset=True))
    if user is None:
        raise ResourceNotFound("User not found")

    logfire.info("Profile updated for user {user_id}", user_id=principal.subject)
    return UserResponse.from_record(user)


@router.put("/password", response_model=MessageResponse)
async def change_password(
    payload: PasswordChangeRequest,
    principal: CurrentPrincipal,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Changes the caller's password.

    ## Possible Errors
    - 400 Bad Request: The new password breaks the password policy.
    - 401 Unauthorized: The current password is incorrect.
    """
    await auth_service.change_password(principal.subject, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed successfully")


@router.get("/auth-check", response_model=DebugAuthResponse)
async def auth_check(principal: CurrentPrincipal):
    return DebugAuthResponse(
        subject=principal.subject,
        email=principal.email,
        role=principal.role,
        authorities=[principal.role],
        active=principal.active,
    )


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    payload: UserUpdateRequest,
    request: Request,
    store=Depends(get_store),
):
    """Updates a user's profile. Only the user themself or an admin may do so."""
    user = await store.get_user(user_id)
    if user is None:
        raise ResourceNotFound("User not found")

    enforce_ownership(request, user.id)

    updated = await store.update_user(user_id, **payload.model_dump(exclude_unset=True))
    return UserResponse.from_record(updated)
