"""
Authentication Dependencies
FastAPI dependencies for route protection.
"""

import hmac
import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.utils import decode_token
from app.config import settings
from app.database import get_async_session
from app.models import Business

logger = logging.getLogger(__name__)

# Security scheme for Swagger UI
security = HTTPBearer()


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Validate the Supabase access token and return the user's id.

    Raises:
        HTTPException: If token is invalid or expired
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if not payload:
        raise credentials_exception

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise credentials_exception

    try:
        return UUID(str(user_id_str))
    except ValueError:
        raise credentials_exception


async def get_authorized_business(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    business_id: UUID = Query(..., description="Business to operate on"),
) -> Business:
    """
    Load the business and check the user owns or coaches it.

    Raises:
        HTTPException: 404 if the business does not exist, 403 if the user
        has no access to it
    """
    result = await session.execute(select(Business).where(Business.id == business_id))
    business = result.scalar_one_or_none()

    if not business:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Business not found",
        )

    if not business.has_member(user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this business",
        )

    return business


def verify_cron_secret(
    authorization: Optional[str] = Header(None),
) -> None:
    """
    Guard for scheduler-triggered endpoints.

    Requires ``Authorization: Bearer <CRON_SECRET>`` in production when a
    secret is configured; other environments are let through.
    """
    cron_secret = settings.cron_secret
    if not cron_secret:
        return

    expected = f"Bearer {cron_secret}"
    if authorization and hmac.compare_digest(authorization, expected):
        return

    if settings.is_production:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    logger.debug("Cron secret missing or wrong, allowed outside production")


# Type aliases for cleaner route signatures
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
AuthorizedBusiness = Annotated[Business, Depends(get_authorized_business)]
