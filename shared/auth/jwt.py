"""
JWT Token Management
====================

Bearer tokens naming the identity that opens, claims or refunds packets.
The token subject is the identity's address; it is also the payout
recipient for claims and refunds.

Version: 0.1.0
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from pydantic import BaseModel, Field

from shared.config import settings
from shared.logging import get_logger


logger = get_logger(__name__)


class TokenData(BaseModel):
    """Decoded JWT token payload."""

    sub: str = Field(..., min_length=1, description="Subject (acting identity)")
    roles: list[str] = Field(default_factory=list)
    exp: datetime
    iat: datetime = Field(default_factory=lambda: datetime.now(UTC))


def create_access_token(
    subject: str,
    roles: list[str] | None = None,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """
    Create a JWT access token for `subject`.

    Args:
        subject: Identity the token acts for
        roles: Optional role names
        expires_delta: Custom lifetime (default from settings)
        extra_claims: Additional claims to embed

    Returns:
        str: Encoded JWT token
    """
    now = datetime.now(UTC)
    expire = now + (
        expires_delta or timedelta(minutes=settings.jwt.access_token_expire_minutes)
    )

    to_encode: dict[str, Any] = dict(extra_claims or {})
    to_encode.update(
        {
            "sub": subject,
            "roles": roles or [],
            "exp": expire,
            "iat": now,
            "token_type": "access",
        }
    )

    logger.debug("access_token_created", expires_at=expire.isoformat())

    return jwt.encode(
        to_encode,
        settings.jwt.secret_key.get_secret_value(),
        algorithm=settings.jwt.algorithm,
    )


def decode_token(token: str) -> TokenData | None:
    """
    Decode and validate an access token.

    Returns:
        TokenData, or None if the token is invalid, expired or not an
        access token
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt.secret_key.get_secret_value(),
            algorithms=[settings.jwt.algorithm],
        )
    except JWTError as e:
        logger.warning("token_decode_failed", error=str(e))
        return None

    if payload.get("token_type") != "access":
        logger.warning("token_type_mismatch", actual=payload.get("token_type"))
        return None
    if not payload.get("sub"):
        logger.warning("token_subject_missing")
        return None

    return TokenData(
        sub=payload["sub"],
        roles=payload.get("roles", []),
        exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
        iat=datetime.fromtimestamp(payload.get("iat", 0), tz=UTC),
    )
