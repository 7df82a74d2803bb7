"""Orders. Customers see what they bought, artists see orders containing their work."""

import math
import logfire

from fastapi import APIRouter, Depends, Query, Request, status

from typing import Annotated

from models.helpers import Role
from schema.orders import OrderCreateRequest, OrderItemInDB, OrderPage, OrderResponse

from security.errors import Forbidden, ResourceNotFound, ValidationFailed
from security.helpers import CurrentPrincipal, enforce_ownership, get_store


router = APIRouter(
    prefix="/api/orders",
    tags=["Orders"],
)


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(payload: OrderCreateRequest, principal: CurrentPrincipal, store=Depends(get_store)):
    """Places an order. Prices and artists are snapshotted from the catalogue."""
    if principal.role != Role.CUSTOMER.authority:
        raise Forbidden("Only customers can place orders")

    items = []
    for requested in payload.items:
        artwork = await store.get_artwork(requested.artwork_id)
        if artwork is None:
            raise ResourceNotFound(f"Artwork {requested.artwork_id} not found")
        if not artwork.is_available:
            raise ValidationFailed({"items": f"Artwork {requested.artwork_id} is not available"})
        items.append(
            OrderItemInDB(
                artwork_id=artwork.id,
                artist_id=artwork.artist_id,
                quantity=requested.quantity,
                price=artwork.price,
            )
        )

    order = await store.create_order(
        principal.subject,
        items,
        shipping_address=payload.shipping_address,
        payment_method=payload.payment_method,
    )
    logfire.info("Order {order_id} placed by {subject}", order_id=order.id, subject=principal.subject)
    return OrderResponse.from_record(order)


@router.get("", response_model=OrderPage)
async def list_orders(
    principal: CurrentPrincipal,
    page: Annotated[int, Query(ge=0)] = 0,
    size: Annotated[int, Query(ge=1, le=100)] = 20,
    store=Depends(get_store),
):
    if principal.role == Role.ARTIST.authority:
        orders, total = await store.list_orders(page, size, artist_id=principal.subject)
    else:
        orders, total = await store.list_orders(page, size, customer_id=principal.subject)

    return OrderPage(
        orders=[OrderResponse.from_record(o) for o in orders],
        total=total,
        page=page,
        total_pages=math.ceil(total / size) if total else 0,
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, request: Request, store=Depends(get_store)):
    """Returns one order to its customer, an artist with a line in it, or an admin."""
    order = await store.get_order(order_id)
    if order is None:
        raise ResourceNotFound("Order not found")

    enforce_ownership(request, {order.customer_id} | order.artist_ids)
    return OrderResponse.from_record(order)
