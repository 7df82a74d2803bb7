"""Artwork reviews. Anyone may read them, only buyers of an artwork may write one."""

import logfire

from fastapi import APIRouter, Depends, Request, status

from models.helpers import OrderStatus, Role
from routers.artworks import load_artwork
from routers.dashboard import AGGREGATE_PAGE_SIZE
from schema.reviews import ReviewCreateRequest, ReviewList, ReviewResponse

from security.errors import ResourceNotFound
from security.helpers import enforce_ownership, get_store


router = APIRouter(
    prefix="/api/reviews",
    tags=["Reviews"],
)


async def purchaser_ids(store, artwork_id: str) -> set[str]:
    """Customers with an order for the artwork that was not cancelled."""
    orders, _ = await store.list_orders(0, AGGREGATE_PAGE_SIZE, artwork_id=artwork_id)
    return {o.customer_id for o in orders if o.status is not OrderStatus.CANCELLED}


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def add_review(payload: ReviewCreateRequest, request: Request, store=Depends(get_store)):
    """Reviews an artwork the calling customer bought. One review per artwork."""
    artwork = await load_artwork(store, payload.artwork_id)
    principal = enforce_ownership(request, await purchaser_ids(store, artwork.id))

    review = await store.create_review(principal.subject, artwork.id, payload.rating, payload.comment)
    logfire.info(
        "Review {review_id} added to artwork {artwork_id} by {subject}",
        review_id=review.id,
        artwork_id=artwork.id,
        subject=principal.subject,
    )
    return ReviewResponse.from_record(review)


@router.get("/artwork/{artwork_id}", response_model=ReviewList)
async def reviews_of_artwork(artwork_id: str, store=Depends(get_store)):
    await load_artwork(store, artwork_id)
    return ReviewList.from_records(await store.list_reviews([artwork_id]))


@router.get("/artist/{artist_id}", response_model=ReviewList)
async def reviews_of_artist(artist_id: str, request: Request, store=Depends(get_store)):
    """Every review left on the artist's artworks. Readable by the artist and admins."""
    enforce_ownership(request, artist_id)
    artist = await store.get_user(artist_id)
    if artist is None or artist.role is not Role.ARTIST:
        raise ResourceNotFound("Artist not found")

    artworks, _ = await store.list_artworks(0, AGGREGATE_PAGE_SIZE, artist_id=artist_id)
    return ReviewList.from_records(await store.list_reviews([a.id for a in artworks]))
