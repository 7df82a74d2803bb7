"""Shopping cart of the calling customer."""

from fastapi import APIRouter, Depends, status

from schema.orders import CartItemRequest, CartItemResponse, CartResponse
from schema.security import MessageResponse

from security.errors import ResourceNotFound
from security.helpers import CurrentPrincipal, get_store


router = APIRouter(
    prefix="/api/cart",
    tags=["Cart"],
)


@router.get("", response_model=CartResponse)
async def get_cart(principal: CurrentPrincipal, store=Depends(get_store)):
    items = await store.list_cart(principal.subject)
    return CartResponse(
        items=[CartItemResponse.from_record(i) for i in items],
        total_items=sum(i.quantity for i in items),
    )


@router.post("/items", response_model=CartItemResponse, status_code=status.HTTP_201_CREATED)
async def add_to_cart(payload: CartItemRequest, principal: CurrentPrincipal, store=Depends(get_store)):
    """Adds an artwork, or increases its quantity when already in the cart."""
    if await store.get_artwork(payload.artwork_id) is None:
        raise ResourceNotFound("Artwork not found")

    item = await store.add_to_cart(principal.subject, payload.artwork_id, payload.quantity)
    return CartItemResponse.from_record(item)


@router.delete("/items/{artwork_id}", response_model=MessageResponse)
async def remove_from_cart(artwork_id: str, principal: CurrentPrincipal, store=Depends(get_store)):
    if not await store.remove_from_cart(principal.subject, artwork_id):
        raise ResourceNotFound("Item not in cart")
    return MessageResponse(message="Item removed from cart")


@router.delete("", response_model=MessageResponse)
async def clear_cart(principal: CurrentPrincipal, store=Depends(get_store)):
    await store.clear_cart(principal.subject)
    return MessageResponse(message="Cart cleared")
