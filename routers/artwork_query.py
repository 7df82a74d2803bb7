"""Read-only catalogue search used by the storefront."""

import math
import logfire

from fastapi import APIRouter, Depends, Query

from typing import Annotated, List, Optional

from routers.artworks import load_artwork
from schema.artworks import ArtworkQueryPage, ArtworkResponse

from security.errors import ValidationFailed
from security.helpers import get_store


router = APIRouter(
    prefix="/api/v1/artwork-query",
    tags=["Artwork Query"],
)

FEATURED_LIMIT = 8
# Artist listings are not paginated
ARTIST_LISTING_LIMIT = 1_000


@router.get("", response_model=ArtworkQueryPage)
async def search_artworks(
    page: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=50)] = 12,
    category: Optional[str] = None,
    min_price: Annotated[Optional[float], Query(alias="minPrice", ge=0)] = None,
    max_price: Annotated[Optional[float], Query(alias="maxPrice", ge=0)] = None,
    search: Optional[str] = None,
    artist_id: Annotated[Optional[str], Query(alias="artistId")] = None,
    store=Depends(get_store),
):
    """Available artworks, newest first, filtered by any combination of the parameters."""
    if min_price is not None and max_price is not None and min_price > max_price:
        raise ValidationFailed({"minPrice": "Must not exceed maxPrice"})

    artworks, total = await store.list_artworks(
        page,
        limit,
        artist_id=artist_id,
        category=category,
        available=True,
        min_price=min_price,
        max_price=max_price,
        search=search.strip() if search else None,
    )
    logfire.debug("Catalogue search matched {total} artworks", total=total)
    return ArtworkQueryPage(
        artworks=[ArtworkResponse.from_record(a) for a in artworks],
        current_page=page,
        total_items=total,
        total_pages=math.ceil(total / limit) if total else 0,
    )


@router.get("/featured", response_model=List[ArtworkResponse])
async def featured_artworks(store=Depends(get_store)):
    artworks, _ = await store.list_artworks(0, FEATURED_LIMIT, available=True, featured_only=True)
    return [ArtworkResponse.from_record(a) for a in artworks]


@router.get("/artist/{artist_id}", response_model=List[ArtworkResponse])
async def artworks_by_artist(artist_id: str, store=Depends(get_store)):
    artworks, _ = await store.list_artworks(0, ARTIST_LISTING_LIMIT, artist_id=artist_id, available=True)
    return [ArtworkResponse.from_record(a) for a in artworks]


@router.get("/{artwork_id}", response_model=ArtworkResponse)
async def get_artwork(artwork_id: str, store=Depends(get_store)):
    return ArtworkResponse.from_record(await load_artwork(store, artwork_id))


@router.get("/{artwork_id}/related", response_model=List[ArtworkResponse])
async def related_artworks(
    artwork_id: str,
    limit: Annotated[int, Query(ge=1, le=12)] = 4,
    store=Depends(get_store),
):
    """Other available artworks of the same category."""
    artwork = await load_artwork(store, artwork_id)
    if not artwork.category:
        return []
    related, _ = await store.list_artworks(
        0, limit, category=artwork.category, available=True, exclude_id=artwork.id
    )
    return [ArtworkResponse.from_record(a) for a in related]
