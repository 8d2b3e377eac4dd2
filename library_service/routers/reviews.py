"""Review routes — one review per patron per book, owner-only edits."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from library_service.auth.dependencies import get_current_patron
from library_service.models.patron import Patron
from library_service.routers.ratings import get_feedback_service
from library_service.schemas.feedback import FeedbackResponse, ReviewCreate, ReviewListResponse
from library_service.services.feedback_service import FeedbackService

router = APIRouter(tags=["Reviews"])


@router.get("/books/{book_id}/reviews", response_model=ReviewListResponse)
async def get_reviews_by_book(
    book_id: int,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: FeedbackService = Depends(get_feedback_service),
):
    page = await service.get_reviews_by_book(book_id, limit=limit, offset=offset)
    return ReviewListResponse(
        reviews=[FeedbackResponse.model_validate(r) for r in page["reviews"]],
        total=page["total"],
        limit=limit,
        offset=offset,
    )


@router.post("/books/{book_id}/reviews", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    book_id: int,
    data: ReviewCreate,
    patron: Patron = Depends(get_current_patron),
    service: FeedbackService = Depends(get_feedback_service),
):
    review = await service.create_review(book_id, patron.id, data.rating, data.review_text)
    return FeedbackResponse.model_validate(review)


@router.put("/reviews/{review_id}", response_model=FeedbackResponse)
async def update_review(
    review_id: int,
    data: ReviewCreate,
    patron: Patron = Depends(get_current_patron),
    service: FeedbackService = Depends(get_feedback_service),
):
    review = await service.update_review(review_id, patron.id, data.rating, data.review_text)
    return FeedbackResponse.model_validate(review)


@router.delete("/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(
    review_id: int,
    patron: Patron = Depends(get_current_patron),
    service: FeedbackService = Depends(get_feedback_service),
):
    await service.delete_review(review_id, patron.id)
