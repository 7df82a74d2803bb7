"""Public artist directory."""

import math

from fastapi import APIRouter, Depends, Query

from typing import Annotated

from models.helpers import Role
from routers.artworks import artwork_page
from routers.dashboard import AGGREGATE_PAGE_SIZE
from schema.artworks import ArtworkPage
from schema.reviews import ReviewList
from schema.users import ArtistListResponse, ArtistResponse, FeaturedArtistList, FeaturedArtistResponse

from security.errors import ResourceNotFound
from security.helpers import get_store


router = APIRouter(
    prefix="/api/artists",
    tags=["Artists"],
)


FEATURED_ARTISTS_LIMIT = 5
FEATURED_ARTISTS_SCAN = 100


async def load_artist(store, artist_id: str):
    artist = await store.get_user(artist_id)
    if artist is None or artist.role is not Role.ARTIST or not artist.active:
        raise ResourceNotFound("Artist not found")
    return artist


@router.get("", response_model=ArtistListResponse)
async def list_artists(
    page: Annotated[int, Query(ge=0)] = 0,
    size: Annotated[int, Query(ge=1, le=100)] = 20,
    store=Depends(get_store),
):
    artists, total = await store.list_users(page, size, role=Role.ARTIST)
    return ArtistListResponse(
        artists=[ArtistResponse.from_record(a) for a in artists if a.active],
        total=total,
        page=page,
        total_pages=math.ceil(total / size) if total else 0,
    )


@router.get("/featured", response_model=FeaturedArtistList)
async def featured_artists(store=Depends(get_store)):
    """The first active artists, with their artwork count and average review rating."""
    artists, _ = await store.list_users(0, FEATURED_ARTISTS_SCAN, role=Role.ARTIST)
    featured = []
    for artist in (a for a in artists if a.active):
        artworks, artwork_count = await store.list_artworks(0, AGGREGATE_PAGE_SIZE, artist_id=artist.id)
        reviews = await store.list_reviews([a.id for a in artworks])
        featured.append(
            FeaturedArtistResponse(
                **ArtistResponse.from_record(artist).model_dump(),
                artwork_count=artwork_count,
                average_rating=ReviewList.from_records(reviews).average_rating,
            )
        )
        if len(featured) == FEATURED_ARTISTS_LIMIT:
            break
    return FeaturedArtistList(artists=featured)


@router.get("/{artist_id}", response_model=ArtistResponse)
async def get_artist(artist_id: str, store=Depends(get_store)):
    return ArtistResponse.from_record(await load_artist(store, artist_id))


@router.get("/{artist_id}/artworks", response_model=ArtworkPage)
async def get_artist_artworks(
    artist_id: str,
    page: Annotated[int, Query(ge=0)] = 0,
    size: Annotated[int, Query(ge=1, le=100)] = 20,
    store=Depends(get_store),
):
    await load_artist(store, artist_id)
    artworks, total = await store.list_artworks(page, size, artist_id=artist_id, available=True)
    return artwork_page(artworks, total, page, size)
