"""Checkout and patron schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from library_service.models.copy import CopyFormat
from library_service.models.patron import PatronStatus
from library_service.schemas.book import BookSummary


class CheckoutCreate(BaseModel):
    copy_id: int
    patron_id: int


class PatronResponse(BaseModel):
    id: int
    card_number: str
    first_name: str
    last_name: str
    status: PatronStatus

    model_config = {"from_attributes": True}


class PatronSummary(BaseModel):
    id: int
    first_name: str
    last_name: str

    model_config = {"from_attributes": True}


class CheckoutCopy(BaseModel):
    id: int
    book_id: int
    format: CopyFormat
    copy_number: Optional[int]
    barcode: Optional[str]
    book: BookSummary

    model_config = {"from_attributes": True}


class CheckoutResponse(BaseModel):
    id: int
    copy_id: int
    patron_id: int
    checkout_date: datetime
    due_date: datetime
    return_date: Optional[datetime]
    patron: PatronResponse
    # "copy" would shadow BaseModel.copy
    copy_record: CheckoutCopy = Field(validation_alias="copy", serialization_alias="copy")

    model_config = {"from_attributes": True}
