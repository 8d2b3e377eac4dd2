"""Patron login and token schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class PatronLogin(BaseModel):
    card_number: str = Field(..., min_length=1, max_length=50)


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefresh(BaseModel):
    refresh_token: str
