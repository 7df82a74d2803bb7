from datetime import datetime

from pydantic import Field, field_serializer

from typing import Annotated, List, Optional

import pymongo
from beanie import Document, Indexed, PydanticObjectId

from .helpers import utc_now


class Artwork(Document):
    title: Annotated[str, Field(max_length=200)]
    description: Annotated[Optional[str], Field(default=None, max_length=5000)]
    price: Annotated[float, Field(gt=0)]
    category: Annotated[Optional[str], Field(default=None)]
    medium: Annotated[Optional[str], Field(default=None)]
    images: Annotated[List[str], Field(default=[])]  # List of image URLs under /uploads
    tags: Annotated[List[str], Field(default=[])]
    is_available: Annotated[bool, Field(default=True)]
    featured: Annotated[bool, Field(default=False)]
    artist_id: Annotated[str, Indexed(index_type=pymongo.ASCENDING)]  # Owning artist
    created_at: Annotated[datetime, Field(default_factory=utc_now)]
    updated_at: Annotated[datetime, Field(default_factory=utc_now)]

    @field_serializer("id")
    def convert_pydantic_object_id_to_string(self, id: PydanticObjectId):
        return str(id)

    class Settings:
        name = "artworks"
