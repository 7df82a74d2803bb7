from datetime import datetime

from pydantic import Field, BaseModel, field_serializer

from typing import Annotated, List, Optional

import pymongo
from beanie import Document, Indexed, PydanticObjectId

from .helpers import OrderStatus, utc_now


class OrderItem(BaseModel):
    """Line of an order, with a snapshot of the artwork's price and artist."""
    artwork_id: Annotated[str, Field()]
    artist_id: Annotated[str, Field()]
    quantity: Annotated[int, Field(ge=1, default=1)]
    price: Annotated[float, Field(gt=0)]


class Order(Document):
    customer_id: Annotated[str, Indexed(index_type=pymongo.ASCENDING)]
    items: Annotated[List[OrderItem], Field(default=[])]
    total_amount: Annotated[float, Field(ge=0)]
    status: Annotated[OrderStatus, Field(default=OrderStatus.PENDING)]
    shipping_address: Annotated[Optional[str], Field(default=None)]
    payment_method: Annotated[Optional[str], Field(default=None)]
    created_at: Annotated[datetime, Field(default_factory=utc_now)]
    updated_at: Annotated[datetime, Field(default_factory=utc_now)]

    @field_serializer("id")
    def convert_pydantic_object_id_to_string(self, id: PydanticObjectId):
        return str(id)

    class Settings:
        name = "orders"


class CartItem(Document):
    user_id: Annotated[str, Indexed(index_type=pymongo.ASCENDING)]
    artwork_id: Annotated[str, Field()]
    quantity: Annotated[int, Field(ge=1, default=1)]
    added_at: Annotated[datetime, Field(default_factory=utc_now)]

    class Settings:
        name = "cart_items"
        indexes = [
            pymongo.IndexModel(
                [("user_id", pymongo.ASCENDING), ("artwork_id", pymongo.ASCENDING)],
                unique=True,
            )
        ]


class WishlistItem(Document):
    user_id: Annotated[str, Indexed(index_type=pymongo.ASCENDING)]
    artwork_id: Annotated[str, Field()]
    added_at: Annotated[datetime, Field(default_factory=utc_now)]

    class Settings:
        name = "wishlist_items"
        indexes = [
            pymongo.IndexModel(
                [("user_id", pymongo.ASCENDING), ("artwork_id", pymongo.ASCENDING)],
                unique=True,
            )
        ]
