"""Request, response and record models for artwork reviews."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from typing import Annotated, List, Optional

from models.helpers import utc_now


class ReviewInDB(BaseModel):
    id: str
    customer_id: Annotated[str, Field(description="Subject id of the reviewing customer")]
    artwork_id: str
    rating: Annotated[int, Field(ge=1, le=5)]
    comment: Optional[str] = None
    created_at: Annotated[datetime, Field(default_factory=utc_now)]


class ReviewCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    artwork_id: Annotated[str, Field(min_length=1, alias="artworkId")]
    rating: Annotated[int, Field(ge=1, le=5)]
    comment: Annotated[Optional[str], Field(default=None, max_length=2000)]

    @field_validator("comment")
    @classmethod
    def blank_comment_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class ReviewResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    customer_id: Annotated[str, Field(alias="customerId")]
    artwork_id: Annotated[str, Field(alias="artworkId")]
    rating: int
    comment: Optional[str] = None
    created_at: Annotated[datetime, Field(alias="createdAt")]

    @classmethod
    def from_record(cls, review: ReviewInDB) -> "ReviewResponse":
        return cls(**review.model_dump())


class ReviewList(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reviews: List[ReviewResponse]
    total: int
    average_rating: Annotated[Optional[float], Field(alias="averageRating")]

    @classmethod
    def from_records(cls, reviews: List[ReviewInDB]) -> "ReviewList":
        average = round(sum(r.rating for r in reviews) / len(reviews), 2) if reviews else None
        return cls(
            reviews=[ReviewResponse.from_record(r) for r in reviews],
            total=len(reviews),
            average_rating=average,
        )
