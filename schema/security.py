"""Defines schema of requests and responses related to security"""

from pydantic import BaseModel, ConfigDict, Field

from typing import Annotated, Literal, Optional

from models.helpers import Role, canonical_role

from schema.users import UserResponse


TokenKind = Literal["access", "refresh"]


class Claims(BaseModel):
    """Verified content of a bearer token."""

    model_config = ConfigDict(frozen=True)

    sub: Annotated[str, Field(min_length=1)]
    email: Annotated[str, Field(min_length=1)]
    role: Annotated[str, Field(pattern=r"^ROLE_(CUSTOMER|ARTIST|ADMIN)$")]
    iat: int
    exp: int
    jti: Optional[str] = None
    typ: TokenKind = "access"


class Principal(BaseModel):
    """Authenticated identity attached to a request."""

    model_config = ConfigDict(frozen=True)

    subject: str
    email: str
    role: Annotated[str, Field(description="Canonical ROLE_ form")]
    active: bool

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.authority

    @classmethod
    def from_claims(cls, claims: Claims, active: bool) -> "Principal":
        return cls(subject=claims.sub, email=claims.email, role=canonical_role(claims.role), active=active)


class DirectoryEntry(BaseModel):
    """What the request pipeline needs to know about a user."""

    id: str
    email: str
    role: Role
    active: bool


class TokenPair(BaseModel):
    """Model representing both access and refresh tokens."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: Annotated[str, Field(alias="accessToken")]
    refresh_token: Annotated[str, Field(alias="refreshToken")]


class RefreshTokenRequest(BaseModel):
    """Model for refresh and logout requests."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Annotated[Optional[str], Field(default=None, alias="refreshToken")]


class AuthResponse(BaseModel):
    """Returned by register and login."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    user: UserResponse
    tokens: TokenPair
    redirect_url: Annotated[str, Field(alias="redirectUrl")]


class AccessTokenData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: Annotated[str, Field(alias="accessToken")]


class RefreshResponse(BaseModel):
    """Returned by the refresh endpoint."""

    success: bool = True
    data: AccessTokenData


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class VerifiedUserResponse(UserResponse):
    """Profile derived from the request principal."""

    authorities: list[str]


class DebugAuthResponse(BaseModel):
    """What the server knows about the caller."""

    subject: str
    email: str
    role: str
    authorities: list[str]
    active: bool
