"""Contains the schema definition for requests and responses related to users
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator

from typing import Annotated, Optional

from models.helpers import Role, UserStatus, ACTIVE_STATUSES, utc_now


class UserInDB(BaseModel):
    """Describes the structure of the user data returned by the storage layer."""

    id: Annotated[str, Field(description="Unique identifier for the user")]
    email: Annotated[EmailStr, Field(max_length=254)]
    password: Annotated[str, Field(description="bcrypt hash")]
    first_name: Annotated[str, Field(max_length=50)]
    last_name: Annotated[str, Field(max_length=50)]
    role: Annotated[Role, Field(default=Role.CUSTOMER)]
    is_active: Annotated[bool, Field(default=True)]
    status: Annotated[UserStatus, Field(default=UserStatus.APPROVED)]
    bio: Annotated[Optional[str], Field(default=None, max_length=1000)]
    website: Annotated[Optional[str], Field(default=None, max_length=255)]
    profile_image: Annotated[Optional[str], Field(default=None)]
    created_at: Annotated[datetime, Field(default_factory=utc_now)]
    updated_at: Annotated[datetime, Field(default_factory=utc_now)]

    @property
    def active(self) -> bool:
        """A user may act only while enabled and not suspended or rejected."""
        return self.is_active and self.status in ACTIVE_STATUSES


class UserResponse(BaseModel):
    """Public view of a user, never carries the password hash."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: EmailStr
    first_name: Annotated[str, Field(alias="firstName")]
    last_name: Annotated[str, Field(alias="lastName")]
    role: Role
    is_active: Annotated[bool, Field(alias="isActive")]
    status: UserStatus
    bio: Optional[str] = None
    website: Optional[str] = None
    profile_image: Annotated[Optional[str], Field(default=None, alias="profileImage")]
    created_at: Annotated[datetime, Field(alias="createdAt")]

    @classmethod
    def from_record(cls, user: UserInDB) -> "UserResponse":
        return cls(**user.model_dump(exclude={"password", "updated_at"}))


class RegisterRequest(BaseModel):
    """Describes the structure of the registration request.

    Password strength is checked by the auth service so that every violated
    rule can be reported at once.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: Annotated[EmailStr, Field(max_length=254)]
    password: Annotated[str, Field(min_length=1, max_length=128)]
    first_name: Annotated[str, Field(min_length=1, max_length=50, alias="firstName")]
    last_name: Annotated[str, Field(min_length=1, max_length=50, alias="lastName")]
    role: Annotated[Optional[str], Field(default=None)]

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class LoginRequest(BaseModel):
    """Describes the structure of the login request."""

    email: Annotated[str, Field(min_length=1, max_length=254)]
    password: Annotated[str, Field(min_length=1, max_length=128)]


class PasswordChangeRequest(BaseModel):
    """Describes the structure of the change password request."""

    model_config = ConfigDict(populate_by_name=True)

    current_password: Annotated[str, Field(min_length=1, alias="currentPassword")]
    new_password: Annotated[str, Field(min_length=1, max_length=128, alias="newPassword")]


class UserUpdateRequest(BaseModel):
    """Describes the structure of the profile update request. Omitted fields are left as is."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: Annotated[Optional[str], Field(default=None, min_length=2, max_length=50, alias="firstName")]
    last_name: Annotated[Optional[str], Field(default=None, min_length=2, max_length=50, alias="lastName")]
    bio: Annotated[Optional[str], Field(default=None, max_length=1000)]
    website: Annotated[
        Optional[str],
        Field(default=None, max_length=255, pattern=r"^(https?://)?([\w\-]+(\.[\w\-]+)+)/?.*$"),
    ]


class StatusUpdateRequest(BaseModel):
    """Admin request to change the moderation status of a user."""

    status: UserStatus

    @field_validator("status", mode="before")
    @classmethod
    def upper_case_status(cls, v):
        return v.upper() if isinstance(v, str) else v


class RoleUpdateRequest(BaseModel):
    """Admin request to change the role of a user."""

    role: Role

    @field_validator("role", mode="before")
    @classmethod
    def parse_role(cls, v):
        return Role.parse(v)


class UserListResponse(BaseModel):
    """Page of users for the admin surface."""

    users: list[UserResponse]
    total: int
    page: int
    limit: int


class ArtistResponse(BaseModel):
    """Public profile of an artist. Contact details are not exposed."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    first_name: Annotated[str, Field(alias="firstName")]
    last_name: Annotated[str, Field(alias="lastName")]
    bio: Optional[str] = None
    website: Optional[str] = None
    profile_image: Annotated[Optional[str], Field(default=None, alias="profileImage")]

    @classmethod
    def from_record(cls, user: UserInDB) -> "ArtistResponse":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            bio=user.bio,
            website=user.website,
            profile_image=user.profile_image,
        )


class ArtistListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    artists: list[ArtistResponse]
    total: int
    page: int
    total_pages: Annotated[int, Field(alias="totalPages")]


class FeaturedArtistResponse(ArtistResponse):
    artwork_count: Annotated[int, Field(alias="artworkCount")]
    average_rating: Annotated[Optional[float], Field(default=None, alias="averageRating")]


class FeaturedArtistList(BaseModel):
    artists: list[FeaturedArtistResponse]
