"""
Feedback aggregation — per-book rating statistics.

Two entry points:

- ``get_stats`` for one book: rounded average, total count and a five-bucket
  star distribution.
- ``get_stats_for_books`` for a list page: one grouped query for all ids, with
  zero summaries synthesized for ids that have no feedback, so callers never
  have to null-check.

Book existence is not validated here; an unknown id simply has no rows.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from library_service.models.feedback import MAX_RATING, MIN_RATING, Feedback

T = TypeVar("T")

STAR_VALUES = tuple(range(MIN_RATING, MAX_RATING + 1))


def empty_distribution() -> dict[int, int]:
    return {star: 0 for star in STAR_VALUES}


def format_distribution(rows: Iterable[tuple[Any, Any]]) -> dict[int, int]:
    """Turn ``(rating, count)`` rows into a dict with exactly the keys 1..5."""
    distribution = empty_distribution()
    for rating, count in rows:
        star = int(rating)
        if star in distribution:
            distribution[star] += int(count or 0)
    return distribution


def round_average(value: Optional[float]) -> float:
    """Display rounding: one decimal place, halves up, 0 when there is no average."""
    if value is None:
        return 0
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


@dataclass
class RatingStats:
    average_rating: float
    total_ratings: int
    distribution: dict[int, int] = field(default_factory=empty_distribution)
    # Unrounded mean, kept for sorting and further computation
    raw_average: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "average_rating": self.average_rating,
            "total_ratings": self.total_ratings,
            "distribution": dict(self.distribution),
        }


@dataclass
class BookRatingSummary:
    average_rating: float
    review_count: int

    @property
    def has_ratings(self) -> bool:
        return self.review_count > 0


def sort_by_rating(
    items: Sequence[T],
    rating_of: Callable[[T], Optional[float]],
    descending: bool = True,
) -> list[T]:
    """Order items by rating with unrated items (None) last in either direction.

    The sort is stable, so ties keep their incoming order.
    """
    rated = [item for item in items if rating_of(item) is not None]
    unrated = [item for item in items if rating_of(item) is None]
    rated.sort(key=lambda item: rating_of(item), reverse=descending)
    return rated + unrated


class FeedbackAggregator:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_stats(self, book_id: int) -> RatingStats:
        totals = await self.session.execute(
            select(func.avg(Feedback.rating), func.count(Feedback.id)).where(
                Feedback.book_id == book_id
            )
        )
        average, total = totals.one()

        buckets = await self.session.execute(
            select(Feedback.rating, func.count(Feedback.id))
            .where(Feedback.book_id == book_id)
            .group_by(Feedback.rating)
        )

        raw_average = float(average) if average is not None else None
        return RatingStats(
            average_rating=round_average(raw_average),
            total_ratings=int(total or 0),
            distribution=format_distribution(buckets.all()),
            raw_average=raw_average,
        )

    async def get_stats_for_books(self, book_ids: Iterable[int]) -> dict[int, BookRatingSummary]:
        ids = list(dict.fromkeys(book_ids))
        if not ids:
            return {}

        result = await self.session.execute(
            select(
                Feedback.book_id,
                func.avg(Feedback.rating),
                func.count(Feedback.id),
            )
            .where(Feedback.book_id.in_(ids))
            .group_by(Feedback.book_id)
        )

        summaries: dict[int, BookRatingSummary] = {}
        for book_id, average, count in result.all():
            summaries[book_id] = BookRatingSummary(
                average_rating=float(average) if average is not None else 0,
                review_count=int(count or 0),
            )

        for book_id in ids:
            if book_id not in summaries:
                summaries[book_id] = BookRatingSummary(average_rating=0, review_count=0)

        return summaries
