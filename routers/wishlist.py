"""Wishlist of the calling customer."""

from fastapi import APIRouter, Depends, status

from typing import List

from schema.orders import WishlistItemRequest, WishlistItemResponse
from schema.security import MessageResponse

from security.errors import ResourceNotFound
from security.helpers import CurrentPrincipal, get_store


router = APIRouter(
    prefix="/api/wishlist",
    tags=["Wishlist"],
)


@router.get("", response_model=List[WishlistItemResponse])
async def get_wishlist(principal: CurrentPrincipal, store=Depends(get_store)):
    items = await store.list_wishlist(principal.subject)
    return [WishlistItemResponse.from_record(i) for i in items]


@router.post("", response_model=WishlistItemResponse, status_code=status.HTTP_201_CREATED)
async def add_to_wishlist(payload: WishlistItemRequest, principal: CurrentPrincipal, store=Depends(get_store)):
    if await store.get_artwork(payload.artwork_id) is None:
        raise ResourceNotFound("Artwork not found")

    item = await store.add_to_wishlist(principal.subject, payload.artwork_id)
    return WishlistItemResponse.from_record(item)


@router.delete("/{artwork_id}", response_model=MessageResponse)
async def remove_from_wishlist(artwork_id: str, principal: CurrentPrincipal, store=Depends(get_store)):
    if not await store.remove_from_wishlist(principal.subject, artwork_id):
        raise ResourceNotFound("Item not in wishlist")
    return MessageResponse(message="Item removed from wishlist")
