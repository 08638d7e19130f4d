"""
Authentication Module
=====================

JWT bearer authentication for the packet service.

Usage:
    from shared.auth import User, create_access_token, get_current_user

    token = create_access_token("0xabc...")

    @app.post("/protected")
    async def protected(user: User = Depends(get_current_user)):
        return {"identity": user.id}
"""

from shared.auth.dependencies import (
    User,
    get_current_user,
    get_optional_user,
    oauth2_scheme,
)
from shared.auth.jwt import (
    TokenData,
    create_access_token,
    decode_token,
)

__all__ = [
    # JWT
    "create_access_token",
    "decode_token",
    "TokenData",
    # Dependencies
    "User",
    "get_current_user",
    "get_optional_user",
    "oauth2_scheme",
]
