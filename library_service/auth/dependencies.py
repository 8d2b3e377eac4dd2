"""FastAPI dependencies for patron authentication."""

from __future__ import annotations

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from library_service.auth.jwt_handler import TokenType, decode_patron_token
from library_service.database import get_db
from library_service.models.patron import Patron

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_patron(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Patron:
    """Resolve the bearer access token to an active patron holding the same card."""
    if credentials is None:
        raise _unauthorized("Authentication required")

    claims = decode_patron_token(credentials.credentials, TokenType.ACCESS)
    if claims is None:
        raise _unauthorized("Invalid or expired access token")

    patron = await db.get(Patron, claims.patron_id)
    if patron is None or not patron.is_active:
        raise _unauthorized("Invalid or inactive patron")
    # Token was issued against a card that has since been replaced
    if patron.card_number != claims.card_number:
        raise _unauthorized("Library card is no longer valid")
    return patron
