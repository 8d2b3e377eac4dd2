"""
Feedback write paths and per-book / per-patron listings.

Ratings and reviews share one ``feedback`` row per (book, patron):

- the rating path upserts: a resubmission updates the existing row in place;
- the review path inserts once: a second review for the same book is a
  Conflict, and only the owner may edit or delete it.

The (book_id, patron_id) unique constraint is the final arbiter for
concurrent first submissions.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from library_service.errors import Conflict, Forbidden, NotFound, ValidationError
from library_service.models.book import Book
from library_service.models.feedback import MAX_RATING, MAX_REVIEW_LENGTH, MIN_RATING, Feedback
from library_service.models.patron import Patron
from library_service.services.feedback_aggregator import FeedbackAggregator

logger = structlog.get_logger()


def validate_feedback(rating: Any, review_text: Optional[str]) -> None:
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    if review_text is not None and len(review_text) > MAX_REVIEW_LENGTH:
        raise ValidationError(f"Review text must be at most {MAX_REVIEW_LENGTH} characters")


class FeedbackService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.aggregator = FeedbackAggregator(session)

    async def _require_book(self, book_id: int) -> Book:
        book = await self.session.get(Book, book_id)
        if book is None:
            raise NotFound(f"Book with ID {book_id} not found")
        return book

    async def _require_patron(self, patron_id: int) -> Patron:
        patron = await self.session.get(Patron, patron_id)
        if patron is None:
            raise NotFound(f"Patron with ID {patron_id} not found")
        return patron

    async def _find(self, book_id: int, patron_id: int) -> Optional[Feedback]:
        result = await self.session.execute(
            select(Feedback).where(
                Feedback.book_id == book_id,
                Feedback.patron_id == patron_id,
            )
        )
        return result.scalar_one_or_none()

    async def _reload(self, feedback_id: int) -> Feedback:
        result = await self.session.execute(
            select(Feedback)
            .where(Feedback.id == feedback_id)
            .options(selectinload(Feedback.patron), selectinload(Feedback.book))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _insert(self, book_id: int, patron_id: int, rating: int, review_text: Optional[str]) -> Feedback:
        """Insert inside a savepoint; IntegrityError leaves the session usable."""
        feedback = Feedback(
            book_id=book_id,
            patron_id=patron_id,
            rating=rating,
            review_text=review_text or None,
        )
        async with self.session.begin_nested():
            self.session.add(feedback)
        return feedback

    # ── Ratings (upsert) ──

    async def submit_rating(
        self,
        book_id: int,
        patron_id: int,
        rating: int,
        review_text: Optional[str] = None,
    ) -> tuple[Feedback, bool]:
        """Create or update the patron's rating for a book.

        Returns ``(feedback, created)``.
        """
        validate_feedback(rating, review_text)
        await self._require_book(book_id)
        await self._require_patron(patron_id)

        existing = await self._find(book_id, patron_id)
        if existing is None:
            try:
                feedback = await self._insert(book_id, patron_id, rating, review_text)
            except IntegrityError:
                # A concurrent first submission won the insert; update it instead
                logger.info("rating_insert_race_retrying_as_update", book_id=book_id, patron_id=patron_id)
                existing = await self._find(book_id, patron_id)
                if existing is None:
                    raise
            else:
                logger.info("rating_created", book_id=book_id, patron_id=patron_id, rating=rating)
                return await self._reload(feedback.id), True

        existing.rating = rating
        existing.review_text = review_text or None
        await self.session.flush()
        logger.info("rating_updated", book_id=book_id, patron_id=patron_id, rating=rating)
        return await self._reload(existing.id), False

    async def get_rating(self, book_id: int, patron_id: int) -> Feedback:
        result = await self.session.execute(
            select(Feedback)
            .where(Feedback.book_id == book_id, Feedback.patron_id == patron_id)
            .options(selectinload(Feedback.patron), selectinload(Feedback.book))
        )
        feedback = result.scalar_one_or_none()
        if feedback is None:
            raise NotFound("Rating not found")
        return feedback

    async def delete_rating(self, book_id: int, patron_id: int, requesting_patron_id: int) -> None:
        if patron_id != requesting_patron_id:
            raise Forbidden("You can only delete your own ratings")

        feedback = await self._find(book_id, patron_id)
        if feedback is None:
            raise NotFound("Rating not found")

        await self.session.delete(feedback)
        await self.session.flush()
        logger.info("rating_deleted", book_id=book_id, patron_id=patron_id)

    async def get_book_ratings(self, book_id: int, limit: int = 10, offset: int = 0) -> dict[str, Any]:
        result = await self.session.execute(
            select(Feedback)
            .where(Feedback.book_id == book_id)
            .options(selectinload(Feedback.patron))
            .order_by(Feedback.created_at.desc(), Feedback.id.desc())
            .offset(offset)
            .limit(limit)
        )
        stats = await self.aggregator.get_stats(book_id)
        return {
            "ratings": list(result.scalars().all()),
            "stats": stats,
            "total": stats.total_ratings,
            "limit": limit,
            "offset": offset,
        }

    async def get_patron_ratings(self, patron_id: int, limit: int = 10, offset: int = 0) -> dict[str, Any]:
        total = (
            await self.session.execute(
                select(func.count(Feedback.id)).where(Feedback.patron_id == patron_id)
            )
        ).scalar() or 0

        result = await self.session.execute(
            select(Feedback)
            .where(Feedback.patron_id == patron_id)
            .options(
                selectinload(Feedback.patron),
                selectinload(Feedback.book).selectinload(Book.authors),
            )
            .order_by(Feedback.updated_at.desc(), Feedback.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return {
            "ratings": list(result.scalars().all()),
            "total": total,
            "limit": limit,
            "offset": offset,
        }

    # ── Reviews (insert once, owner-only edits) ──

    async def create_review(
        self,
        book_id: int,
        patron_id: int,
        rating: int,
        review_text: Optional[str] = None,
    ) -> Feedback:
        validate_feedback(rating, review_text)
        await self._require_book(book_id)
        await self._require_patron(patron_id)

        if await self._find(book_id, patron_id) is not None:
            raise Conflict("You have already reviewed this book")

        try:
            feedback = await self._insert(book_id, patron_id, rating, review_text)
        except IntegrityError:
            logger.info("review_insert_rejected_duplicate", book_id=book_id, patron_id=patron_id)
            raise Conflict("You have already reviewed this book")

        logger.info("review_created", review_id=feedback.id, book_id=book_id, patron_id=patron_id)
        return await self._reload(feedback.id)

    async def _require_owned_review(self, review_id: int, patron_id: int, action: str) -> Feedback:
        feedback = await self.session.get(Feedback, review_id)
        if feedback is None:
            raise NotFound(f"Review with ID {review_id} not found")
        if feedback.patron_id != patron_id:
            raise Forbidden(f"You can only {action} your own reviews")
        return feedback

    async def update_review(
        self,
        review_id: int,
        patron_id: int,
        rating: int,
        review_text: Optional[str] = None,
    ) -> Feedback:
        feedback = await self._require_owned_review(review_id, patron_id, "edit")
        validate_feedback(rating, review_text)

        feedback.rating = rating
        feedback.review_text = review_text or None
        await self.session.flush()
        logger.info("review_updated", review_id=review_id, patron_id=patron_id)
        return await self._reload(review_id)

    async def delete_review(self, review_id: int, patron_id: int) -> None:
        feedback = await self._require_owned_review(review_id, patron_id, "delete")
        await self.session.delete(feedback)
        await self.session.flush()
        logger.info("review_deleted", review_id=review_id, patron_id=patron_id)

    async def get_reviews_by_book(self, book_id: int, limit: int = 10, offset: int = 0) -> dict[str, Any]:
        await self._require_book(book_id)

        total = (
            await self.session.execute(
                select(func.count(Feedback.id)).where(Feedback.book_id == book_id)
            )
        ).scalar() or 0

        result = await self.session.execute(
            select(Feedback)
            .where(Feedback.book_id == book_id)
            .options(selectinload(Feedback.patron))
            .order_by(Feedback.created_at.desc(), Feedback.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return {
            "reviews": list(result.scalars().all()),
            "total": total,
            "limit": limit,
            "offset": offset,
        }
