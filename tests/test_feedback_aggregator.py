"""Tests for per-book rating statistics."""

from __future__ import annotations

import pytest

from library_service.services.feedback_aggregator import (
    FeedbackAggregator,
    format_distribution,
    round_average,
    sort_by_rating,
)


class TestHelpers:
    def test_format_distribution_always_has_five_keys(self):
        assert format_distribution([]) == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
        assert format_distribution([(5, 2), (3, "1")]) == {1: 0, 2: 0, 3: 1, 4: 0, 5: 2}

    def test_round_average(self):
        assert round_average(None) == 0
        assert round_average(2.04) == 2.0
        assert round_average(3.6666) == 3.7
        assert round_average(4.25) == 4.3
        assert round_average(2.35) == 2.4

    def test_sort_by_rating_puts_unrated_last_both_ways(self):
        items = [("a", None), ("b", 3.0), ("c", 4.5), ("d", None), ("e", 3.0)]

        desc = sort_by_rating(items, lambda i: i[1], descending=True)
        assert [i[0] for i in desc] == ["c", "b", "e", "a", "d"]

        asc = sort_by_rating(items, lambda i: i[1], descending=False)
        assert [i[0] for i in asc] == ["b", "e", "c", "a", "d"]


class TestGetStats:
    @pytest.mark.asyncio
    async def test_no_feedback_returns_zeroes(self, session, factory):
        book = await factory.book()

        stats = await FeedbackAggregator(session).get_stats(book.id)

        assert stats.to_dict() == {
            "average_rating": 0,
            "total_ratings": 0,
            "distribution": {1: 0, 2: 0, 3: 0, 4: 0, 5: 0},
        }

    @pytest.mark.asyncio
    async def test_unknown_book_is_not_an_error(self, session):
        stats = await FeedbackAggregator(session).get_stats(424242)
        assert stats.total_ratings == 0
        assert stats.average_rating == 0

    @pytest.mark.asyncio
    async def test_average_count_and_distribution(self, session, factory):
        book = await factory.book()
        other = await factory.book()
        for rating in (5, 4, 4):
            await factory.feedback(book, await factory.patron(), rating)
        await factory.feedback(other, await factory.patron(), 1)

        stats = await FeedbackAggregator(session).get_stats(book.id)

        assert stats.total_ratings == 3
        assert stats.average_rating == 4.3
        assert stats.raw_average == pytest.approx(13 / 3)
        assert stats.distribution == {1: 0, 2: 0, 3: 0, 4: 2, 5: 1}

    @pytest.mark.asyncio
    async def test_exact_half_average_rounds_up(self, session, factory):
        book = await factory.book()
        for rating in (4, 4, 4, 5):
            await factory.feedback(book, await factory.patron(), rating)

        stats = await FeedbackAggregator(session).get_stats(book.id)

        assert stats.raw_average == pytest.approx(4.25)
        assert stats.average_rating == 4.3


class TestGetStatsForBooks:
    @pytest.mark.asyncio
    async def test_missing_books_are_synthesized(self, session, factory):
        b1 = await factory.book()
        b2 = await factory.book()
        await factory.feedback(b1, await factory.patron(), 5)
        await factory.feedback(b1, await factory.patron(), 3)

        result = await FeedbackAggregator(session).get_stats_for_books([b1.id, b2.id])

        assert set(result) == {b1.id, b2.id}
        assert result[b1.id].average_rating == 4
        assert result[b1.id].review_count == 2
        assert result[b2.id].average_rating == 0
        assert result[b2.id].review_count == 0

    @pytest.mark.asyncio
    async def test_empty_input(self, session):
        assert await FeedbackAggregator(session).get_stats_for_books([]) == {}

    @pytest.mark.asyncio
    async def test_unrounded_mean_is_kept(self, session, factory):
        book = await factory.book()
        for rating in (5, 4, 4):
            await factory.feedback(book, await factory.patron(), rating)

        result = await FeedbackAggregator(session).get_stats_for_books([book.id, 999])

        assert result[book.id].average_rating == pytest.approx(13 / 3)
        assert result[999].review_count == 0
