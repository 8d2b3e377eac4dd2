"""
Patron tokens.

Both tokens carry the patron id as ``sub`` and the library card number as
``card``. Reissuing a card (new number) therefore invalidates every token
issued against the old one, which is how a lost card is revoked.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from library_service.config import get_settings
from library_service.models.patron import Patron

settings = get_settings()

ISSUER = "library-api"


class TokenType(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class PatronClaims:
    patron_id: int
    card_number: str
    token_type: TokenType
    token_id: str


def _lifetime(token_type: TokenType) -> timedelta:
    if token_type is TokenType.ACCESS:
        return timedelta(minutes=settings.access_token_expire_minutes)
    return timedelta(days=settings.refresh_token_expire_days)


def encode_patron_token(patron: Patron, token_type: TokenType) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "iss": ISSUER,
        "sub": str(patron.id),
        "card": patron.card_number,
        "type": token_type.value,
        "iat": issued_at,
        "exp": issued_at + _lifetime(token_type),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def issue_token_pair(patron: Patron) -> tuple[str, str]:
    """Return ``(access_token, refresh_token)`` for ``patron``."""
    return (
        encode_patron_token(patron, TokenType.ACCESS),
        encode_patron_token(patron, TokenType.REFRESH),
    )


def decode_patron_token(token: str, expected: TokenType) -> PatronClaims | None:
    """Claims of a valid, unexpired token of the ``expected`` type, else None."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=ISSUER,
        )
    except JWTError:
        return None

    if payload.get("type") != expected.value:
        return None
    try:
        return PatronClaims(
            patron_id=int(payload["sub"]),
            card_number=str(payload["card"]),
            token_type=expected,
            token_id=str(payload.get("jti", "")),
        )
    except (KeyError, TypeError, ValueError):
        return None
