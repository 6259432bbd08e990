"""
Xero Connection Model
Stores the encrypted OAuth 2.0 credentials linking a business to a Xero tenant.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base import Base, TimestampMixin, UUIDMixin

# Access tokens are refreshed when they expire within this window
TOKEN_REFRESH_BUFFER = timedelta(minutes=5)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class XeroConnection(Base, UUIDMixin, TimestampMixin):
    """
    Xero OAuth connection for a business.

    Xero rotates the refresh token on every refresh, so the stored pair
    must be replaced together and the previous refresh token is unusable
    once a refresh succeeds.

    Attributes:
        id: Unique identifier (UUID)
        business_id: Business this connection belongs to
        user_id: Auth user who authorized the connection
        tenant_id: Xero's organization identifier
        tenant_name: Xero organization name
        access_token: Fernet-encrypted access token (30 minute lifetime)
        refresh_token: Fernet-encrypted refresh token (60 day lifetime, single use)
        expires_at: When the access token expires
        is_active: False once the connection can no longer be refreshed
        last_synced_at: When P&L lines were last replaced
        token_refreshing_at: Set while a refresh is in flight
    """

    business_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
    )

    tenant_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Xero's internal organization identifier",
    )

    tenant_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Xero organization/company name",
    )

    access_token: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Encrypted access token",
    )

    refresh_token: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Encrypted refresh token",
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When access_token expires",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    last_synced_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    token_refreshing_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_xero_connections_business_id", "business_id"),
        Index("ix_xero_connections_is_active", "is_active"),
    )

    def __repr__(self) -> str:
        return (
            f"<XeroConnection(id={self.id}, business_id={self.business_id}, "
            f"tenant={self.tenant_name!r}, active={self.is_active})>"
        )

    def expires_in(self, now: Optional[datetime] = None) -> timedelta:
        """Time remaining until the access token expires (negative once expired)."""
        now = now or datetime.now(timezone.utc)
        return as_utc(self.expires_at) - now

    def needs_refresh(
        self,
        buffer: timedelta = TOKEN_REFRESH_BUFFER,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Check if the access token expires within the buffer window.
        Refreshing early prevents mid-request expiration.
        """
        return self.expires_in(now) <= buffer

    @property
    def is_expired(self) -> bool:
        return self.expires_in() <= timedelta(0)
