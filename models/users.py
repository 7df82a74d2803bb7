from datetime import datetime

from pydantic import Field, EmailStr, field_serializer
from typing import Annotated, Optional

import pymongo
from beanie import Document, Indexed, PydanticObjectId

from .helpers import Role, UserStatus, utc_now


class User(Document):
    """Registered account of a customer, artist or administrator.
    """
    first_name: Annotated[str, Field(max_length=50, min_length=1, serialization_alias="firstName")]
    last_name: Annotated[str, Field(max_length=50, min_length=1, serialization_alias="lastName")]
    email: Annotated[EmailStr, Indexed(index_type=pymongo.ASCENDING, unique=True), Field(max_length=254)]
    password: Annotated[str, Field(min_length=1)]  # bcrypt hash
    role: Annotated[Role, Field(default=Role.CUSTOMER)]  # stored without the ROLE_ prefix
    is_active: Annotated[bool, Field(default=True, serialization_alias="isActive")]
    status: Annotated[UserStatus, Field(default=UserStatus.APPROVED)]
    bio: Annotated[Optional[str], Field(default=None, max_length=1000)]
    website: Annotated[Optional[str], Field(default=None, max_length=255)]
    profile_image: Annotated[Optional[str], Field(default=None, serialization_alias="profileImage")]
    created_at: Annotated[datetime, Field(default_factory=utc_now)]
    updated_at: Annotated[datetime, Field(default_factory=utc_now)]

    @field_serializer("id")
    def convert_pydantic_object_id_to_string(self, id: PydanticObjectId):
        return str(id)

    class Settings:
        name = "users"
