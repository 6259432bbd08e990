"""
OAuth State Store
Temporary storage for OAuth state → business mapping.

Single-process in-memory store with expiration. A multi-worker deployment
needs a shared store (Redis or a database table) behind the same interface.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

DEFAULT_RETURN_TO = "/integrations"


@dataclass(frozen=True)
class OAuthState:
    """What the callback needs to finish a connect flow."""

    business_id: UUID
    user_id: Optional[UUID]
    return_to: str
    expires_at: datetime


def safe_return_path(return_to: Optional[str]) -> str:
    """Only same-site relative paths are allowed as post-connect redirects."""
    if not return_to or not return_to.startswith("/") or return_to.startswith("//"):
        return DEFAULT_RETURN_TO
    return return_to


class OAuthStateStore:
    """
    In-memory store for OAuth state tokens.

    Maps state → (business, user, return path) for callback lookup.
    States expire after 10 minutes and can be consumed once.
    """

    _store: dict[str, OAuthState] = {}

    STATE_LIFETIME = timedelta(minutes=10)

    @classmethod
    def save_state(
        cls,
        state: str,
        business_id: UUID,
        user_id: Optional[UUID] = None,
        return_to: Optional[str] = None,
    ) -> None:
        """
        Save state → business mapping.

        Args:
            state: OAuth state token
            business_id: Business being connected
            user_id: User who started the flow
            return_to: App path to return to after the callback
        """
        cls._store[state] = OAuthState(
            business_id=business_id,
            user_id=user_id,
            return_to=safe_return_path(return_to),
            expires_at=datetime.now(timezone.utc) + cls.STATE_LIFETIME,
        )

        cls._cleanup_expired()

    @classmethod
    def get_state(cls, state: str) -> Optional[OAuthState]:
        """Return the stored entry if it exists and has not expired."""
        entry = cls._store.get(state)
        if entry is None:
            return None

        if datetime.now(timezone.utc) > entry.expires_at:
            del cls._store[state]
            return None

        return entry

    @classmethod
    def consume_state(cls, state: str) -> Optional[OAuthState]:
        """
        Get and remove state (one-time use).

        Returns:
            The stored entry if valid, None otherwise
        """
        entry = cls.get_state(state)
        cls._store.pop(state, None)
        return entry

    @classmethod
    def clear(cls) -> None:
        cls._store.clear()

    @classmethod
    def _cleanup_expired(cls) -> None:
        """Remove expired states from store."""
        now = datetime.now(timezone.utc)
        expired_states = [
            state for state, entry in cls._store.items()
            if now > entry.expires_at
        ]
        for state in expired_states:
            del cls._store[state]


oauth_state_store = OAuthStateStore()
