"""Tests for rating upserts and review ownership rules."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from library_service.errors import Conflict, Forbidden, NotFound, ValidationError
from library_service.models.feedback import Feedback
from library_service.services.feedback_service import FeedbackService, validate_feedback


async def count_feedback(session, book_id: int) -> int:
    result = await session.execute(select(func.count(Feedback.id)).where(Feedback.book_id == book_id))
    return result.scalar()


class TestValidation:
    @pytest.mark.parametrize("rating", [0, 6, -1, "5", None, True, 4.5])
    def test_rejects_bad_ratings(self, rating):
        with pytest.raises(ValidationError, match="Rating must be between 1 and 5"):
            validate_feedback(rating, None)

    def test_rejects_long_review(self):
        with pytest.raises(ValidationError):
            validate_feedback(3, "x" * 2001)

    def test_accepts_bounds(self):
        validate_feedback(1, None)
        validate_feedback(5, "x" * 2000)


class TestSubmitRating:
    @pytest.mark.asyncio
    async def test_first_submission_creates(self, session, factory):
        book = await factory.book()
        patron = await factory.patron()

        feedback, created = await FeedbackService(session).submit_rating(book.id, patron.id, 4, "Solid")

        assert created is True
        assert feedback.rating == 4
        assert feedback.review_text == "Solid"
        assert feedback.patron.id == patron.id

    @pytest.mark.asyncio
    async def test_resubmission_updates_in_place(self, session, factory):
        book = await factory.book()
        patron = await factory.patron()
        service = FeedbackService(session)

        first, _ = await service.submit_rating(book.id, patron.id, 2)
        second, created = await service.submit_rating(book.id, patron.id, 5, "Changed my mind")

        assert created is False
        assert second.id == first.id
        assert second.rating == 5
        assert await count_feedback(session, book.id) == 1

        stats = await service.aggregator.get_stats(book.id)
        assert stats.average_rating == 5
        assert stats.total_ratings == 1

    @pytest.mark.asyncio
    async def test_insert_rejected_by_constraint_is_retried_as_update(self, session, factory, monkeypatch):
        book = await factory.book()
        patron = await factory.patron()
        existing = await factory.feedback(book, patron, 2)
        service = FeedbackService(session)

        # A concurrent writer inserted after the first lookup missed
        real_find = service._find
        calls = []

        async def miss_once(book_id, patron_id):
            calls.append((book_id, patron_id))
            if len(calls) == 1:
                return None
            return await real_find(book_id, patron_id)

        monkeypatch.setattr(service, "_find", miss_once)

        feedback, created = await service.submit_rating(book.id, patron.id, 5)

        assert created is False
        assert feedback.id == existing.id
        assert feedback.rating == 5
        assert len(calls) == 2
        assert await count_feedback(session, book.id) == 1

    @pytest.mark.asyncio
    async def test_invalid_rating_writes_nothing(self, session, factory):
        book = await factory.book()
        patron = await factory.patron()

        with pytest.raises(ValidationError):
            await FeedbackService(session).submit_rating(book.id, patron.id, 9)

        assert await count_feedback(session, book.id) == 0

    @pytest.mark.asyncio
    async def test_unknown_book(self, session, factory):
        patron = await factory.patron()

        with pytest.raises(NotFound, match="Book with ID 404 not found"):
            await FeedbackService(session).submit_rating(404, patron.id, 3)

    @pytest.mark.asyncio
    async def test_get_rating(self, session, factory):
        book = await factory.book()
        patron = await factory.patron()
        service = FeedbackService(session)

        with pytest.raises(NotFound, match="Rating not found"):
            await service.get_rating(book.id, patron.id)

        await service.submit_rating(book.id, patron.id, 3)
        assert (await service.get_rating(book.id, patron.id)).rating == 3


class TestDeleteRating:
    @pytest.mark.asyncio
    async def test_owner_can_delete(self, session, factory):
        book = await factory.book()
        patron = await factory.patron()
        await factory.feedback(book, patron, 4)

        await FeedbackService(session).delete_rating(book.id, patron.id, requesting_patron_id=patron.id)

        assert await count_feedback(session, book.id) == 0

    @pytest.mark.asyncio
    async def test_other_patron_is_forbidden(self, session, factory):
        book = await factory.book()
        owner = await factory.patron()
        intruder = await factory.patron()
        await factory.feedback(book, owner, 4)

        with pytest.raises(Forbidden):
            await FeedbackService(session).delete_rating(book.id, owner.id, requesting_patron_id=intruder.id)

        assert await count_feedback(session, book.id) == 1

    @pytest.mark.asyncio
    async def test_missing_rating(self, session, factory):
        book = await factory.book()
        patron = await factory.patron()

        with pytest.raises(NotFound):
            await FeedbackService(session).delete_rating(book.id, patron.id, requesting_patron_id=patron.id)


class TestReviews:
    @pytest.mark.asyncio
    async def test_create_review(self, session, factory):
        book = await factory.book()
        patron = await factory.patron()

        review = await FeedbackService(session).create_review(book.id, patron.id, 5, "Loved it")

        assert review.id is not None
        assert review.book_id == book.id
        assert review.review_text == "Loved it"

    @pytest.mark.asyncio
    async def test_second_review_conflicts_and_keeps_original(self, session, factory):
        book = await factory.book()
        patron = await factory.patron()
        service = FeedbackService(session)

        original = await service.create_review(book.id, patron.id, 5, "First take")
        with pytest.raises(Conflict, match="You have already reviewed this book"):
            await service.create_review(book.id, patron.id, 1, "Second take")

        kept = await service.get_rating(book.id, patron.id)
        assert kept.id == original.id
        assert kept.rating == 5
        assert kept.review_text == "First take"
        assert await count_feedback(session, book.id) == 1

    @pytest.mark.asyncio
    async def test_duplicate_caught_by_constraint_is_conflict(self, session, factory, monkeypatch):
        book = await factory.book()
        patron = await factory.patron()
        await factory.feedback(book, patron, 3)
        service = FeedbackService(session)

        # Simulate a concurrent writer that inserted between the check and the insert
        async def nothing_found(book_id, patron_id):
            return None

        monkeypatch.setattr(service, "_find", nothing_found)

        with pytest.raises(Conflict):
            await service.create_review(book.id, patron.id, 4, "Racing")

        assert await count_feedback(session, book.id) == 1

    @pytest.mark.asyncio
    async def test_owner_can_update(self, session, factory):
        book = await factory.book()
        patron = await factory.patron()
        review = await factory.feedback(book, patron, 2, "Meh")

        updated = await FeedbackService(session).update_review(review.id, patron.id, 4, "Grew on me")

        assert updated.rating == 4
        assert updated.review_text == "Grew on me"

    @pytest.mark.asyncio
    async def test_non_owner_cannot_update_or_delete(self, session, factory):
        book = await factory.book()
        owner = await factory.patron()
        intruder = await factory.patron()
        review = await factory.feedback(book, owner, 2, "Meh")
        service = FeedbackService(session)

        with pytest.raises(Forbidden, match="You can only edit your own reviews"):
            await service.update_review(review.id, intruder.id, 5, "Hijacked")
        with pytest.raises(Forbidden, match="You can only delete your own reviews"):
            await service.delete_review(review.id, intruder.id)

        kept = await service.get_rating(book.id, owner.id)
        assert kept.rating == 2
        assert kept.review_text == "Meh"

    @pytest.mark.asyncio
    async def test_update_missing_review(self, session, factory):
        patron = await factory.patron()

        with pytest.raises(NotFound):
            await FeedbackService(session).update_review(5150, patron.id, 3)

    @pytest.mark.asyncio
    async def test_owner_can_delete(self, session, factory):
        book = await factory.book()
        patron = await factory.patron()
        review = await factory.feedback(book, patron, 3, "Fine")

        await FeedbackService(session).delete_review(review.id, patron.id)

        assert await count_feedback(session, book.id) == 0

    @pytest.mark.asyncio
    async def test_reviews_by_book(self, session, factory):
        book = await factory.book()
        for rating in (1, 2, 3):
            await factory.feedback(book, await factory.patron(), rating, f"Review {rating}")

        page = await FeedbackService(session).get_reviews_by_book(book.id, limit=2, offset=0)

        assert page["total"] == 3
        assert len(page["reviews"]) == 2
        assert page["limit"] == 2

    @pytest.mark.asyncio
    async def test_reviews_for_unknown_book(self, session):
        with pytest.raises(NotFound):
            await FeedbackService(session).get_reviews_by_book(8080)
