"""
Database Package
Async engine, session dependency and declarative base.
"""

from app.database.connection import (
    async_session_factory,
    get_async_session,
    close_db,
)
from app.database.base import Base, TimestampMixin, UUIDMixin

__all__ = [
    "async_session_factory",
    "get_async_session",
    "close_db",
    "Base",
    "TimestampMixin",
    "UUIDMixin",
]
