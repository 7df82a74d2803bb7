from datetime import datetime

from pydantic import Field, field_serializer

from typing import Annotated, Optional

import pymongo
from beanie import Document, Indexed, PydanticObjectId

from .helpers import utc_now


class Review(Document):
    customer_id: Annotated[str, Field()]
    artwork_id: Annotated[str, Indexed(index_type=pymongo.ASCENDING)]
    rating: Annotated[int, Field(ge=1, le=5)]
    comment: Annotated[Optional[str], Field(default=None, max_length=2000)]
    created_at: Annotated[datetime, Field(default_factory=utc_now)]

    @field_serializer("id")
    def convert_pydantic_object_id_to_string(self, id: PydanticObjectId):
        return str(id)

    class Settings:
        name = "reviews"
        indexes = [
            # One review per customer and artwork
            pymongo.IndexModel(
                [("customer_id", pymongo.ASCENDING), ("artwork_id", pymongo.ASCENDING)],
                unique=True,
            )
        ]
