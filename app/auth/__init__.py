"""
Authentication Package
Supabase token validation, business access checks and cron authorization.
"""

from app.auth.dependencies import (
    AuthorizedBusiness,
    CurrentUserId,
    get_authorized_business,
    get_current_user_id,
    verify_cron_secret,
)
from app.auth.rate_limit import limiter

__all__ = [
    "AuthorizedBusiness",
    "CurrentUserId",
    "get_authorized_business",
    "get_current_user_id",
    "verify_cron_secret",
    "limiter",
]
