"""
FastAPI Authentication Dependencies
===================================

Resolve the acting identity from the bearer token.

Version: 0.1.0
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel, Field

from shared.auth.jwt import decode_token
from shared.logging import get_logger


logger = get_logger(__name__)

# Tokens are issued out of band; tokenUrl only feeds the OpenAPI schema
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/auth/token",
    auto_error=False,
)


class User(BaseModel):
    """Authenticated identity."""

    id: str = Field(..., description="Identity address")
    roles: list[str] = Field(default_factory=list)


async def get_current_user(
    token: Annotated[str | None, Depends(oauth2_scheme)],
) -> User:
    """
    Extract and validate the identity from the JWT.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if token is None:
        logger.warning("auth_token_missing")
        raise credentials_exception

    token_data = decode_token(token)
    if token_data is None:
        logger.warning("auth_token_invalid")
        raise credentials_exception

    return User(id=token_data.sub, roles=token_data.roles)


async def get_optional_user(
    token: Annotated[str | None, Depends(oauth2_scheme)],
) -> User | None:
    """Identity if a valid token was sent, otherwise None."""
    if token is None:
        return None
    token_data = decode_token(token)
    if token_data is None:
        return None
    return User(id=token_data.sub, roles=token_data.roles)
