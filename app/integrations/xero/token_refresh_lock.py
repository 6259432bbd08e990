"""
Token Refresh Lock
Per-connection async locks so only one refresh runs per connection.

Xero invalidates a refresh token the moment it is used. Two overlapping
refreshes of the same connection would leave one of them holding a dead
token and the connection would be deactivated.
"""

import asyncio
import logging
from uuid import UUID

logger = logging.getLogger(__name__)


class TokenRefreshLock:
    """Manages async locks for token refresh operations per connection."""

    _locks: dict[UUID, asyncio.Lock] = {}

    @classmethod
    def get_lock(cls, connection_id: UUID) -> asyncio.Lock:
        """
        Get or create the lock for a connection.

        There is no await between lookup and insert, so a single event loop
        can never create two locks for the same connection.
        """
        lock = cls._locks.get(connection_id)
        if lock is None:
            lock = cls._locks.setdefault(connection_id, asyncio.Lock())
            logger.debug("Created token refresh lock for connection %s", connection_id)
        return lock

    @classmethod
    def release_lock(cls, connection_id: UUID) -> None:
        """Drop the lock of a disconnected connection."""
        if cls._locks.pop(connection_id, None) is not None:
            logger.debug("Released token refresh lock for connection %s", connection_id)

    @classmethod
    def clear(cls) -> None:
        cls._locks.clear()
