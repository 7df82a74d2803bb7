"""Artwork catalogue. Reads are public, writes belong to the owning artist or an admin."""

import math
import logfire

from fastapi import APIRouter, Depends, Query, Request, status

from typing import Annotated, Optional

from models.helpers import Role
from schema.artworks import (
    ArtworkCreateRequest,
    ArtworkPage,
    ArtworkResponse,
    ArtworkUpdateRequest,
)
from schema.security import MessageResponse

from security.errors import ResourceNotFound, ValidationFailed
from security.helpers import CurrentPrincipal, enforce_ownership, get_store


router = APIRouter(
    prefix="/api/artworks",
    tags=["Artworks"],
)

Page = Annotated[int, Query(ge=0, description="Zero-based page index")]
Size = Annotated[int, Query(ge=1, le=100)]


def artwork_page(artworks, total: int, page: int, size: int) -> ArtworkPage:
    return ArtworkPage(
        artworks=[ArtworkResponse.from_record(a) for a in artworks],
        total=total,
        page=page,
        total_pages=math.ceil(total / size) if total else 0,
    )


async def load_artwork(store, artwork_id: str):
    artwork = await store.get_artwork(artwork_id)
    if artwork is None:
        raise ResourceNotFound("Artwork not found")
    return artwork


@router.get("", response_model=ArtworkPage)
async def list_artworks(
    page: Page = 0,
    size: Size = 20,
    category: Optional[str] = None,
    artist_id: Annotated[Optional[str], Query(alias="artistId")] = None,
    store=Depends(get_store),
):
    artworks, total = await store.list_artworks(
        page, size, artist_id=artist_id, category=category, available=True
    )
    return artwork_page(artworks, total, page, size)


@router.get("/my-artworks", response_model=ArtworkPage)
async def my_artworks(principal: CurrentPrincipal, page: Page = 0, size: Size = 20, store=Depends(get_store)):
    """Every artwork of the calling artist, sold ones included."""
    artworks, total = await store.list_artworks(page, size, artist_id=principal.subject)
    return artwork_page(artworks, total, page, size)


@router.get("/{artwork_id}", response_model=ArtworkResponse)
async def get_artwork(artwork_id: str, store=Depends(get_store)):
    return ArtworkResponse.from_record(await load_artwork(store, artwork_id))


@router.post("", response_model=ArtworkResponse, status_code=status.HTTP_201_CREATED)
async def create_artwork(payload: ArtworkCreateRequest, principal: CurrentPrincipal, store=Depends(get_store)):
    """Publishes an artwork owned by the calling artist.

    Admins publish on behalf of an artist and must name it with `artistId`.
    """
    artist_id = principal.subject
    if principal.is_admin:
        if not payload.artist_id:
            raise ValidationFailed({"artistId": "Required when an administrator creates an artwork"})
        artist = await store.get_user(payload.artist_id)
        if artist is None or artist.role is not Role.ARTIST:
            raise ValidationFailed({"artistId": "Must reference an existing artist"})
        artist_id = artist.id

    artwork = await store.create_artwork(artist_id, **payload.model_dump(exclude={"artist_id"}))
    logfire.info("Artwork {artwork_id} created by {subject}", artwork_id=artwork.id, subject=principal.subject)
    return ArtworkResponse.from_record(artwork)


@router.put("/{artwork_id}", response_model=ArtworkResponse)
async def update_artwork(
    artwork_id: str,
    payload: ArtworkUpdateRequest,
    request: Request,
    store=Depends(get_store),
):
    """Updates an artwork. Only its artist or an admin may do so."""
    artwork = await load_artwork(store, artwork_id)
    principal = enforce_ownership(request, artwork.artist_id)

    updated = await store.update_artwork(artwork_id, **payload.model_dump(exclude_unset=True))
    logfire.info("Artwork {artwork_id} updated by {subject}", artwork_id=artwork_id, subject=principal.subject)
    return ArtworkResponse.from_record(updated)


@router.delete("/{artwork_id}", response_model=MessageResponse)
async def delete_artwork(artwork_id: str, request: Request, store=Depends(get_store)):
    artwork = await load_artwork(store, artwork_id)
    principal = enforce_ownership(request, artwork.artist_id)

    await store.delete_artwork(artwork_id)
    logfire.info("Artwork {artwork_id} deleted by {subject}", artwork_id=artwork_id, subject=principal.subject)
    return MessageResponse(message="Artwork deleted successfully")
