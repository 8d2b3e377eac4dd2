"""
Catalog service — books and copies, annotated for display.

Every read recomputes availability from the loaded copies/checkouts and pulls
rating summaries for the whole page in one batch query.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from library_service.core.availability import annotate_status, resolve_status
from library_service.errors import Conflict, NotFound
from library_service.models.book import Author, Book
from library_service.models.copy import Copy, CopyFormat
from library_service.services.feedback_aggregator import (
    BookRatingSummary,
    FeedbackAggregator,
    sort_by_rating,
)
from library_service.services.profanity import contains_profanity

logger = structlog.get_logger()


@dataclass
class AnnotatedBook:
    book: Book
    status: str
    rating: BookRatingSummary

    @property
    def sort_rating(self) -> Optional[float]:
        return self.rating.average_rating if self.rating.has_ratings else None


def _with_inventory(query):
    return query.options(
        selectinload(Book.authors),
        selectinload(Book.copies).selectinload(Copy.checkouts),
    )


class BookService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.aggregator = FeedbackAggregator(session)

    async def _annotate(self, books: list[Book]) -> list[AnnotatedBook]:
        summaries = await self.aggregator.get_stats_for_books([b.id for b in books])
        return [
            AnnotatedBook(book=b, status=annotate_status(b), rating=summaries[b.id])
            for b in books
        ]

    async def _load(self, book_id: int) -> Book:
        result = await self.session.execute(
            _with_inventory(select(Book).where(Book.id == book_id)).execution_options(
                populate_existing=True
            )
        )
        book = result.scalar_one_or_none()
        if book is None:
            raise NotFound(f"Book with ID {book_id} not found")
        return book

    async def list_books(
        self,
        genre: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
        sort: str = "title",
        order: str = "asc",
    ) -> list[AnnotatedBook]:
        """List books with status and rating summary.

        ``sort="rating"`` orders by average rating with unrated books last in
        either direction; ties keep title order.
        """
        query = _with_inventory(select(Book))
        if genre:
            query = query.where(Book.genre == genre)
        query = query.order_by(Book.title.asc(), Book.id.asc())

        if sort == "rating":
            result = await self.session.execute(query)
            annotated = await self._annotate(list(result.scalars().all()))
            ranked = sort_by_rating(annotated, lambda a: a.sort_rating, descending=order == "desc")
            return ranked[offset : offset + limit]

        if order == "desc":
            query = query.order_by(None).order_by(Book.title.desc(), Book.id.desc())
        result = await self.session.execute(query.offset(offset).limit(limit))
        return await self._annotate(list(result.scalars().all()))

    async def get_book(self, book_id: int) -> AnnotatedBook:
        book = await self._load(book_id)
        return (await self._annotate([book]))[0]

    async def get_book_status(self, book_id: int) -> str:
        book = await self._load(book_id)
        return resolve_status(book.copies)

    async def top_rated(
        self,
        limit: int = 20,
        offset: int = 0,
        min_rating: Optional[float] = None,
    ) -> list[AnnotatedBook]:
        result = await self.session.execute(
            _with_inventory(select(Book)).order_by(Book.title.asc(), Book.id.asc())
        )
        annotated = await self._annotate(list(result.scalars().all()))
        if min_rating is not None:
            annotated = [
                a for a in annotated if a.sort_rating is not None and a.sort_rating >= min_rating
            ]
        ranked = sort_by_rating(annotated, lambda a: a.sort_rating, descending=True)
        return ranked[offset : offset + limit]

    async def create_book(self, data: dict[str, Any]) -> AnnotatedBook:
        author_ids = data.pop("author_ids", None) or []
        book = Book(**data)
        book.has_profanity = contains_profanity(book.title)

        if author_ids:
            result = await self.session.execute(select(Author).where(Author.id.in_(author_ids)))
            authors = list(result.scalars().all())
            missing = set(author_ids) - {a.id for a in authors}
            if missing:
                raise NotFound(f"Author with ID {min(missing)} not found")
            book.authors = authors

        try:
            async with self.session.begin_nested():
                self.session.add(book)
        except IntegrityError:
            raise Conflict(f"Book with ISBN {book.isbn} already exists")

        logger.info("book_created", book_id=book.id, has_profanity=book.has_profanity)
        return await self.get_book(book.id)

    async def add_copy(self, book_id: int, data: dict[str, Any]) -> Copy:
        if await self.session.get(Book, book_id) is None:
            raise NotFound(f"Book with ID {book_id} not found")

        copy = Copy(book_id=book_id, **data)
        copy.format = CopyFormat(copy.format)
        try:
            async with self.session.begin_nested():
                self.session.add(copy)
        except IntegrityError:
            raise Conflict(f"Copy with barcode {copy.barcode} already exists")

        logger.info("copy_created", copy_id=copy.id, book_id=book_id, format=copy.format.value)
        return copy
