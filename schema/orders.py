"""Request, response and record models for orders, carts and wishlists."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from typing import Annotated, List, Optional

from models.helpers import OrderStatus, utc_now


class OrderItemInDB(BaseModel):
    artwork_id: str
    artist_id: str
    quantity: Annotated[int, Field(ge=1)]
    price: Annotated[float, Field(gt=0)]


class OrderInDB(BaseModel):
    id: str
    customer_id: Annotated[str, Field(description="Subject id of the customer who placed the order")]
    items: List[OrderItemInDB]
    total_amount: float
    status: Annotated[OrderStatus, Field(default=OrderStatus.PENDING)]
    shipping_address: Optional[str] = None
    payment_method: Optional[str] = None
    created_at: Annotated[datetime, Field(default_factory=utc_now)]
    updated_at: Annotated[datetime, Field(default_factory=utc_now)]

    @property
    def artist_ids(self) -> set[str]:
        return {item.artist_id for item in self.items}


class OrderItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    artwork_id: Annotated[str, Field(min_length=1, alias="artworkId")]
    quantity: Annotated[int, Field(ge=1, default=1)]


class OrderCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: Annotated[List[OrderItemRequest], Field(min_length=1)]
    shipping_address: Annotated[Optional[str], Field(default=None, alias="shippingAddress")]
    payment_method: Annotated[Optional[str], Field(default=None, alias="paymentMethod")]


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    artwork_id: Annotated[str, Field(alias="artworkId")]
    artist_id: Annotated[str, Field(alias="artistId")]
    quantity: int
    price: float


class OrderResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    customer_id: Annotated[str, Field(alias="customerId")]
    items: List[OrderItemResponse]
    total_amount: Annotated[float, Field(alias="totalAmount")]
    status: OrderStatus
    shipping_address: Annotated[Optional[str], Field(default=None, alias="shippingAddress")]
    created_at: Annotated[datetime, Field(alias="createdAt")]

    @classmethod
    def from_record(cls, order: OrderInDB) -> "OrderResponse":
        return cls(**order.model_dump(exclude={"payment_method", "updated_at"}))


class CartItemInDB(BaseModel):
    id: str
    user_id: str
    artwork_id: str
    quantity: Annotated[int, Field(ge=1, default=1)]
    added_at: Annotated[datetime, Field(default_factory=utc_now)]


class CartItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    artwork_id: Annotated[str, Field(min_length=1, alias="artworkId")]
    quantity: Annotated[int, Field(ge=1, default=1)]


class WishlistItemInDB(BaseModel):
    id: str
    user_id: str
    artwork_id: str
    added_at: Annotated[datetime, Field(default_factory=utc_now)]


class WishlistItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    artwork_id: Annotated[str, Field(min_length=1, alias="artworkId")]


class OrderPage(BaseModel):
    """Zero-based page of orders."""

    model_config = ConfigDict(populate_by_name=True)

    orders: List[OrderResponse]
    total: int
    page: int
    total_pages: Annotated[int, Field(alias="totalPages")]


class CartItemResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    artwork_id: Annotated[str, Field(alias="artworkId")]
    quantity: int
    added_at: Annotated[datetime, Field(alias="addedAt")]

    @classmethod
    def from_record(cls, item: CartItemInDB) -> "CartItemResponse":
        return cls(**item.model_dump(exclude={"user_id"}))


class CartResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[CartItemResponse]
    total_items: Annotated[int, Field(alias="totalItems")]


class WishlistItemResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    artwork_id: Annotated[str, Field(alias="artworkId")]
    added_at: Annotated[datetime, Field(alias="addedAt")]

    @classmethod
    def from_record(cls, item: WishlistItemInDB) -> "WishlistItemResponse":
        return cls(**item.model_dump(exclude={"user_id"}))


class OrderStatusUpdateRequest(BaseModel):
    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def uppercase_status(cls, v):
        return v.strip().upper() if isinstance(v, str) else v
