"""Book, author and copy schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from library_service.models.copy import CopyFormat


class AuthorResponse(BaseModel):
    id: int
    first_name: Optional[str]
    last_name: str

    model_config = {"from_attributes": True}


class BookCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    isbn: Optional[str] = Field(None, max_length=13)
    publisher: Optional[str] = Field(None, max_length=255)
    publication_year: Optional[int] = Field(None, ge=0, le=2100)
    genre: Optional[str] = Field(None, max_length=100)
    author_ids: list[int] = Field(default_factory=list)


class CopyCreate(BaseModel):
    format: CopyFormat
    copy_number: Optional[int] = Field(None, ge=1)
    barcode: Optional[str] = Field(None, max_length=50)
    kindle_asin: Optional[str] = Field(None, max_length=50)


class CopyResponse(BaseModel):
    id: int
    book_id: int
    format: CopyFormat
    copy_number: Optional[int]
    barcode: Optional[str]
    kindle_asin: Optional[str]

    model_config = {"from_attributes": True}


class BookSummary(BaseModel):
    id: int
    title: str
    isbn: Optional[str]
    genre: Optional[str]

    model_config = {"from_attributes": True}


class BookResponse(BaseModel):
    id: int
    title: str
    isbn: Optional[str]
    publisher: Optional[str]
    publication_year: Optional[int]
    genre: Optional[str]
    has_profanity: bool
    authors: list[AuthorResponse]
    copies: list[CopyResponse]
    status: str
    average_rating: float
    review_count: int
    created_at: Optional[datetime]


class BookListResponse(BaseModel):
    books: list[BookResponse]
    limit: int
    offset: int


class BookStatusResponse(BaseModel):
    book_id: int
    status: str
