"""Catalog routes — book listing with live status and rating summary, copies."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from library_service.database import get_db
from library_service.schemas.book import (
    AuthorResponse,
    BookCreate,
    BookListResponse,
    BookResponse,
    BookStatusResponse,
    CopyCreate,
    CopyResponse,
)
from library_service.services.book_service import AnnotatedBook, BookService
from library_service.services.feedback_aggregator import round_average

router = APIRouter(prefix="/books", tags=["Books"])


def get_book_service(db: AsyncSession = Depends(get_db)) -> BookService:
    return BookService(db)


def to_book_response(item: AnnotatedBook) -> BookResponse:
    book = item.book
    return BookResponse(
        id=book.id,
        title=book.title,
        isbn=book.isbn,
        publisher=book.publisher,
        publication_year=book.publication_year,
        genre=book.genre,
        has_profanity=book.has_profanity,
        authors=[AuthorResponse.model_validate(a) for a in book.authors],
        copies=[CopyResponse.model_validate(c) for c in book.copies],
        status=item.status,
        average_rating=round_average(item.rating.average_rating),
        review_count=item.rating.review_count,
        created_at=book.created_at,
    )


@router.get("", response_model=BookListResponse)
async def list_books(
    genre: str | None = Query(None, max_length=100),
    limit: int = Query(100, ge=1, le=100),
    offset: int = Query(0, ge=0),
    sort: Literal["title", "rating"] = "title",
    order: Literal["asc", "desc"] = "asc",
    service: BookService = Depends(get_book_service),
):
    """List books with real-time availability and average rating."""
    books = await service.list_books(genre=genre, limit=limit, offset=offset, sort=sort, order=order)
    return BookListResponse(
        books=[to_book_response(b) for b in books],
        limit=limit,
        offset=offset,
    )


@router.get("/top-rated", response_model=BookListResponse)
async def top_rated_books(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    min_rating: float | None = Query(None, ge=1, le=5),
    service: BookService = Depends(get_book_service),
):
    """Books ordered by average rating, unrated books last."""
    books = await service.top_rated(limit=limit, offset=offset, min_rating=min_rating)
    return BookListResponse(
        books=[to_book_response(b) for b in books],
        limit=limit,
        offset=offset,
    )


@router.post("", response_model=BookResponse, status_code=status.HTTP_201_CREATED)
async def create_book(
    data: BookCreate,
    service: BookService = Depends(get_book_service),
):
    """Create a book; the profanity flag is computed here, once."""
    return to_book_response(await service.create_book(data.model_dump()))


@router.get("/{book_id}", response_model=BookResponse)
async def get_book(
    book_id: int,
    service: BookService = Depends(get_book_service),
):
    return to_book_response(await service.get_book(book_id))


@router.get("/{book_id}/status", response_model=BookStatusResponse)
async def get_book_status(
    book_id: int,
    service: BookService = Depends(get_book_service),
):
    return BookStatusResponse(book_id=book_id, status=await service.get_book_status(book_id))


@router.post("/{book_id}/copies", response_model=CopyResponse, status_code=status.HTTP_201_CREATED)
async def add_copy(
    book_id: int,
    data: CopyCreate,
    service: BookService = Depends(get_book_service),
):
    copy = await service.add_copy(book_id, data.model_dump())
    return CopyResponse.model_validate(copy)
