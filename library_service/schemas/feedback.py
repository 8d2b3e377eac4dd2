"""Rating and review schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from library_service.schemas.book import BookSummary
from library_service.schemas.checkout import PatronSummary


class RatingCreate(BaseModel):
    book_id: int = Field(..., gt=0)
    rating: int = Field(..., ge=1, le=5)
    review_text: Optional[str] = Field(None, max_length=2000)


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review_text: Optional[str] = Field(None, max_length=1000)


class FeedbackResponse(BaseModel):
    id: int
    book_id: int
    patron_id: int
    rating: int
    review_text: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    patron: Optional[PatronSummary] = None

    model_config = {"from_attributes": True}


class PatronFeedbackResponse(FeedbackResponse):
    book: Optional[BookSummary] = None


class RatingStatsResponse(BaseModel):
    average_rating: float
    total_ratings: int
    distribution: dict[int, int]


class BookRatingsResponse(BaseModel):
    ratings: list[FeedbackResponse]
    stats: RatingStatsResponse
    total: int
    limit: int
    offset: int


class PatronRatingsResponse(BaseModel):
    ratings: list[PatronFeedbackResponse]
    total: int
    limit: int
    offset: int


class ReviewListResponse(BaseModel):
    reviews: list[FeedbackResponse]
    total: int
    limit: int
    offset: int
