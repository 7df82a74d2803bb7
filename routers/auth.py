"""
Auth router for handling user authentication related endpoints.
"""

import logfire

from fastapi import status, APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from typing import Annotated, Optional

from schema.users import RegisterRequest, LoginRequest, UserResponse
from schema.security import (
    AccessTokenData,
    AuthResponse,
    MessageResponse,
    RefreshResponse,
    RefreshTokenRequest,
    TokenPair,
    VerifiedUserResponse,
)

from security.errors import EmailTaken, InvalidCredentials, InvalidToken, TokenRevoked
from security.helpers import CurrentPrincipal, extract_bearer, get_auth_service

from services.auth import AuthResult, AuthService


router = APIRouter(
    prefix="/api/auth",
    tags=["Auth"],
)

AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def _auth_response(result: AuthResult, message: str) -> AuthResponse:
    return AuthResponse(
        message=message,
        user=UserResponse.from_record(result.user),
        tokens=TokenPair(access_token=result.access_token, refresh_token=result.refresh_token),
        redirect_url=result.redirect_url,
    )


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, auth_service: AuthServiceDep):
    """Creates a customer or artist account and returns a token pair.

    ## Possible Errors
    - 400 Bad Request: Invalid fields, weak password (every violated rule is listed) or an `ADMIN` role.
    - 409 Conflict: `{"success": false, "message": "Email already registered"}`
    """
    try:
        result = await auth_service.register(
            payload.email,
            payload.password,
            payload.first_name,
            payload.last_name,
            payload.role,
        )
    except EmailTaken as e:
        return _failure(status.HTTP_409_CONFLICT, e.message)

    return _auth_response(result, "User registered successfully")


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, auth_service: AuthServiceDep):
    """Login endpoint that returns both access and refresh tokens.

    ## Possible Errors
    - 401 Unauthorized: `{"success": false, "message": "Invalid credentials"}`
    """
    try:
        result = await auth_service.login(payload.email, payload.password)
    except InvalidCredentials as e:
        return _failure(status.HTTP_401_UNAUTHORIZED, e.message)

    return _auth_response(result, "Login successful")


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_access_token(payload: RefreshTokenRequest, auth_service: AuthServiceDep):
    """Exchanges a refresh token for a new access token. The refresh token stays valid."""
    try:
        access_token = await auth_service.refresh(payload.refresh_token)
    except (InvalidToken, TokenRevoked) as e:
        return _failure(status.HTTP_401_UNAUTHORIZED, e.message)

    return RefreshResponse(data=AccessTokenData(access_token=access_token))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    auth_service: AuthServiceDep,
    payload: Optional[RefreshTokenRequest] = None,
):
    """Revokes the bearer access token and the refresh token in the body.

    Always succeeds; calling it again with the same tokens is a no-op.
    """
    access_token = extract_bearer(request.headers.get("Authorization"))
    refresh_token = payload.refresh_token if payload else None

    await auth_service.logout(access_token, refresh_token)

    return MessageResponse(message="Logged out successfully")


@router.get("/verify", response_model=VerifiedUserResponse)
async def verify(principal: CurrentPrincipal, auth_service: AuthServiceDep):
    """Returns the profile of the caller together with its authorities."""
    user = await auth_service.profile(principal)
    logfire.debug("Verified token for user {user_id}", user_id=principal.subject)

    return VerifiedUserResponse(
        **UserResponse.from_record(user).model_dump(),
        authorities=[principal.role],
    )
