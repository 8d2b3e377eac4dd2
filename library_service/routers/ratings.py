"""Rating routes — public statistics, authenticated upsert/delete."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from library_service.auth.dependencies import get_current_patron
from library_service.database import get_db
from library_service.models.patron import Patron
from library_service.schemas.feedback import (
    BookRatingsResponse,
    FeedbackResponse,
    PatronFeedbackResponse,
    PatronRatingsResponse,
    RatingCreate,
    RatingStatsResponse,
)
from library_service.services.feedback_aggregator import FeedbackAggregator
from library_service.services.feedback_service import FeedbackService

router = APIRouter(tags=["Ratings"])


def get_feedback_service(db: AsyncSession = Depends(get_db)) -> FeedbackService:
    return FeedbackService(db)


def get_feedback_aggregator(db: AsyncSession = Depends(get_db)) -> FeedbackAggregator:
    return FeedbackAggregator(db)


@router.get("/books/{book_id}/ratings", response_model=BookRatingsResponse)
async def get_book_ratings(
    book_id: int,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: FeedbackService = Depends(get_feedback_service),
):
    page = await service.get_book_ratings(book_id, limit=limit, offset=offset)
    return BookRatingsResponse(
        ratings=[FeedbackResponse.model_validate(r) for r in page["ratings"]],
        stats=RatingStatsResponse(**page["stats"].to_dict()),
        total=page["total"],
        limit=limit,
        offset=offset,
    )


@router.get("/books/{book_id}/ratings/stats", response_model=RatingStatsResponse)
async def get_book_rating_stats(
    book_id: int,
    aggregator: FeedbackAggregator = Depends(get_feedback_aggregator),
):
    """Average, count and 1-5 star distribution for one book."""
    stats = await aggregator.get_stats(book_id)
    return RatingStatsResponse(**stats.to_dict())


@router.post("/ratings", response_model=FeedbackResponse)
async def submit_rating(
    data: RatingCreate,
    response: Response,
    patron: Patron = Depends(get_current_patron),
    service: FeedbackService = Depends(get_feedback_service),
):
    """Create the patron's rating for a book, or update it in place."""
    feedback, created = await service.submit_rating(
        book_id=data.book_id,
        patron_id=patron.id,
        rating=data.rating,
        review_text=data.review_text,
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return FeedbackResponse.model_validate(feedback)


@router.get("/ratings/my-ratings", response_model=PatronRatingsResponse)
async def get_my_ratings(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    patron: Patron = Depends(get_current_patron),
    service: FeedbackService = Depends(get_feedback_service),
):
    page = await service.get_patron_ratings(patron.id, limit=limit, offset=offset)
    return PatronRatingsResponse(
        ratings=[PatronFeedbackResponse.model_validate(r) for r in page["ratings"]],
        total=page["total"],
        limit=limit,
        offset=offset,
    )


@router.get("/ratings/books/{book_id}", response_model=PatronFeedbackResponse)
async def get_my_rating_for_book(
    book_id: int,
    patron: Patron = Depends(get_current_patron),
    service: FeedbackService = Depends(get_feedback_service),
):
    return PatronFeedbackResponse.model_validate(await service.get_rating(book_id, patron.id))


@router.delete("/ratings/books/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_my_rating(
    book_id: int,
    patron: Patron = Depends(get_current_patron),
    service: FeedbackService = Depends(get_feedback_service),
):
    await service.delete_rating(book_id, patron.id, patron.id)


@router.get("/patrons/{patron_id}/ratings", response_model=PatronRatingsResponse)
async def get_patron_ratings(
    patron_id: int,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    patron: Patron = Depends(get_current_patron),
    service: FeedbackService = Depends(get_feedback_service),
):
    page = await service.get_patron_ratings(patron_id, limit=limit, offset=offset)
    return PatronRatingsResponse(
        ratings=[PatronFeedbackResponse.model_validate(r) for r in page["ratings"]],
        total=page["total"],
        limit=limit,
        offset=offset,
    )
