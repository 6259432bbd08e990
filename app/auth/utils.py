"""
Authentication Utilities
Supabase access token decoding.
"""

from typing import Any

from jose import JWTError, jwt

from app.config import settings


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a Supabase access token.

    Checks signature, expiry and the "authenticated" audience.

    Args:
        token: JWT token string

    Returns:
        Token payload dict if valid, None otherwise
    """
    if not settings.supabase_jwt_secret:
        return None

    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except JWTError:
        return None
