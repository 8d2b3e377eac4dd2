"""Auth routes — patron login by library card, refresh with token rotation."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from library_service.auth.jwt_handler import TokenType, decode_patron_token, issue_token_pair
from library_service.database import get_db
from library_service.models.patron import Patron
from library_service.schemas.auth import PatronLogin, TokenRefresh, TokenResponse

logger = structlog.get_logger()
router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=TokenResponse)
async def login(data: PatronLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate an active patron by card number and return JWT tokens."""
    result = await db.execute(select(Patron).where(Patron.card_number == data.card_number))
    patron = result.scalar_one_or_none()

    if not patron:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    if not patron.is_active:
        raise HTTPException(status_code=403, detail=f"Patron account is {patron.status.value}")

    logger.info("patron_login", patron_id=patron.id)

    access_token, refresh_token = issue_token_pair(patron)
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_tokens(data: TokenRefresh, db: AsyncSession = Depends(get_db)):
    """Issue a new token pair for a refresh token whose card is still current."""
    claims = decode_patron_token(data.refresh_token, TokenType.REFRESH)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )

    patron = await db.get(Patron, claims.patron_id)
    if not patron or not patron.is_active or patron.card_number != claims.card_number:
        raise HTTPException(status_code=401, detail="Patron not found, inactive or card replaced")

    logger.info("patron_tokens_refreshed", patron_id=patron.id, previous_jti=claims.token_id)
    access_token, refresh_token = issue_token_pair(patron)
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)
