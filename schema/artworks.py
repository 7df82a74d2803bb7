"""Request, response and record models for artworks."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from typing import Annotated, List, Optional

from models.helpers import utc_now


class ArtworkInDB(BaseModel):
    id: str
    title: Annotated[str, Field(max_length=200)]
    description: Annotated[Optional[str], Field(default=None, max_length=5000)]
    price: Annotated[float, Field(gt=0)]
    category: Annotated[Optional[str], Field(default=None)]
    medium: Annotated[Optional[str], Field(default=None)]
    images: Annotated[List[str], Field(default_factory=list)]  # URLs under /uploads
    tags: Annotated[List[str], Field(default_factory=list)]
    is_available: Annotated[bool, Field(default=True)]
    featured: Annotated[bool, Field(default=False)]
    artist_id: Annotated[str, Field(description="Subject id of the owning artist")]
    created_at: Annotated[datetime, Field(default_factory=utc_now)]
    updated_at: Annotated[datetime, Field(default_factory=utc_now)]


class ArtworkCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Annotated[str, Field(min_length=1, max_length=200)]
    description: Annotated[Optional[str], Field(default=None, max_length=5000)]
    price: Annotated[float, Field(gt=0)]
    category: Optional[str] = None
    medium: Optional[str] = None
    images: Annotated[List[str], Field(default_factory=list)]
    tags: Annotated[List[str], Field(default_factory=list)]
    # Only honoured for admins creating on behalf of an artist
    artist_id: Annotated[Optional[str], Field(default=None, alias="artistId")]


class ArtworkUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Annotated[Optional[str], Field(default=None, min_length=1, max_length=200)]
    description: Annotated[Optional[str], Field(default=None, max_length=5000)]
    price: Annotated[Optional[float], Field(default=None, gt=0)]
    category: Optional[str] = None
    medium: Optional[str] = None
    images: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    is_available: Annotated[Optional[bool], Field(default=None, alias="isAvailable")]


class AdminArtworkUpdateRequest(ArtworkUpdateRequest):
    """Administrators may also feature an artwork on the front page."""

    featured: Optional[bool] = None


class ArtworkResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: Optional[str] = None
    price: float
    category: Optional[str] = None
    medium: Optional[str] = None
    images: List[str]
    tags: List[str]
    is_available: Annotated[bool, Field(alias="isAvailable")]
    featured: bool = False
    artist_id: Annotated[str, Field(alias="artistId")]
    created_at: Annotated[datetime, Field(alias="createdAt")]
    updated_at: Annotated[datetime, Field(alias="updatedAt")]

    @classmethod
    def from_record(cls, artwork: ArtworkInDB) -> "ArtworkResponse":
        return cls(**artwork.model_dump())


class ArtworkPage(BaseModel):
    """Zero-based page of artworks."""

    model_config = ConfigDict(populate_by_name=True)

    artworks: List[ArtworkResponse]
    total: int
    page: int
    total_pages: Annotated[int, Field(alias="totalPages")]


class ArtworkQueryPage(BaseModel):
    """Page of the public catalogue search, numbered from zero."""

    model_config = ConfigDict(populate_by_name=True)

    artworks: List[ArtworkResponse]
    current_page: Annotated[int, Field(alias="currentPage")]
    total_items: Annotated[int, Field(alias="totalItems")]
    total_pages: Annotated[int, Field(alias="totalPages")]
