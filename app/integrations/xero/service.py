"""
Xero Connection Service
Database operations for Xero connections and their OAuth tokens.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID

import httpx
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.encryption import TokenDecryptionError, decrypt_token, encrypt_token
from app.integrations.xero.oauth import XeroOAuth, XeroOAuthError, xero_oauth
from app.integrations.xero.token_refresh_lock import TokenRefreshLock
from app.models.xero_connection import XeroConnection

logger = logging.getLogger(__name__)


class RefreshStatus(str, Enum):
    """Outcome of a proactive token refresh."""

    REFRESHED = "refreshed"
    STILL_VALID = "still_valid"
    FAILED = "failed"
    DEACTIVATED = "deactivated"


@dataclass
class RefreshResult:
    business_id: UUID
    tenant_name: Optional[str]
    status: RefreshStatus
    message: str
    new_expiry: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["business_id"] = str(self.business_id)
        data["status"] = self.status.value
        data["new_expiry"] = self.new_expiry.isoformat() if self.new_expiry else None
        return data


class XeroConnectionService:
    """
    Service for Xero connection management.

    Handles:
    - Connection storage and retrieval
    - Access tokens on demand (refreshing inside the buffer window)
    - Proactive refresh for the token-refresh batch
    - Deactivation, sync bookkeeping and disconnect
    """

    def __init__(self, db: AsyncSession, oauth: Optional[XeroOAuth] = None):
        self.db = db
        self.oauth = oauth or xero_oauth

    async def get_connection_by_business(
        self,
        business_id: UUID,
        active_only: bool = False,
    ) -> Optional[XeroConnection]:
        """
        Get the most recent Xero connection for a business.

        Args:
            business_id: Business UUID
            active_only: Ignore deactivated connections

        Returns:
            XeroConnection if exists, None otherwise
        """
        query = select(XeroConnection).where(XeroConnection.business_id == business_id)
        if active_only:
            query = query.where(XeroConnection.is_active.is_(True))
        query = query.order_by(XeroConnection.created_at.desc()).limit(1)

        result = await self.db.execute(query)
        return result.scalars().first()

    async def get_connection(self, connection_id: UUID) -> Optional[XeroConnection]:
        """Load a connection by id, re-reading its row even if already in the session."""
        return await self.db.get(XeroConnection, connection_id, populate_existing=True)

    async def list_active_connections(self) -> list[XeroConnection]:
        """All active connections, oldest first."""
        result = await self.db.execute(
            select(XeroConnection)
            .where(XeroConnection.is_active.is_(True))
            .order_by(XeroConnection.created_at)
        )
        return list(result.scalars().all())

    async def save_connection_from_callback(
        self,
        business_id: UUID,
        user_id: Optional[UUID],
        token_response: dict,
        tenant: dict,
    ) -> XeroConnection:
        """
        Store a freshly authorized connection.

        Existing connections for the business are deleted first, so a
        reconnect always starts from a clean record.

        Args:
            business_id: Business UUID
            user_id: User who authorized the connection
            token_response: Raw response from Xero token endpoint
            tenant: Entry from the Xero connections endpoint

        Returns:
            Created XeroConnection
        """
        await self.db.execute(
            delete(XeroConnection).where(XeroConnection.business_id == business_id)
        )

        connection = XeroConnection(
            business_id=business_id,
            user_id=user_id,
            tenant_id=tenant["tenantId"],
            tenant_name=tenant.get("tenantName"),
            access_token=encrypt_token(token_response["access_token"]),
            refresh_token=encrypt_token(token_response["refresh_token"]),
            expires_at=XeroOAuth.calculate_expiry(token_response["expires_in"]),
            is_active=True,
        )

        self.db.add(connection)
        await self.db.commit()
        await self.db.refresh(connection)

        logger.info(
            "Stored Xero connection for business %s (tenant %s)",
            business_id,
            connection.tenant_name,
        )
        return connection

    async def get_valid_access_token(
        self,
        connection: XeroConnection,
        buffer: Optional[timedelta] = None,
    ) -> Optional[str]:
        """
        Get a usable access token, refreshing if it expires within the buffer.

        Outside the buffer window the stored token is returned without any
        HTTP call. A failed refresh deactivates the connection; nothing is
        retried.

        Args:
            connection: Stored connection
            buffer: Refresh window (defaults to 5 minutes)

        Returns:
            Access token, or None if the connection could not be refreshed
        """
        buffer = buffer or timedelta(minutes=settings.xero_token_refresh_buffer_minutes)

        if not connection.needs_refresh(buffer):
            return await self._decrypt_access_token(connection)

        async with TokenRefreshLock.get_lock(connection.id):
            # Another task may have rotated the tokens while we waited
            await self.db.refresh(connection)

            if not connection.is_active:
                return None

            if not connection.needs_refresh(buffer):
                return await self._decrypt_access_token(connection)

            logger.info("Refreshing Xero token for %s", connection.tenant_name)
            try:
                return await self._refresh(connection)
            except (XeroOAuthError, TokenDecryptionError) as e:
                logger.error(
                    "Token refresh failed for %s: %s",
                    connection.tenant_name,
                    e,
                )
                await self.deactivate(connection)
                return None

    async def refresh_if_expiring(
        self,
        connection: XeroConnection,
        threshold: Optional[timedelta] = None,
    ) -> RefreshResult:
        """
        Proactively refresh a token that expires within the threshold.

        Only a rejected refresh token (invalid_grant or HTTP 400) deactivates
        the connection; other failures leave it active for the next run.
        """
        threshold = threshold or timedelta(minutes=settings.xero_proactive_refresh_minutes)

        def result(status: RefreshStatus, message: str, new_expiry: Optional[datetime] = None):
            return RefreshResult(
                business_id=connection.business_id,
                tenant_name=connection.tenant_name,
                status=status,
                message=message,
                new_expiry=new_expiry,
            )

        if not connection.needs_refresh(threshold):
            return result(
                RefreshStatus.STILL_VALID,
                f"Token valid until {connection.expires_at.isoformat()}",
            )

        async with TokenRefreshLock.get_lock(connection.id):
            await self.db.refresh(connection)

            if not connection.needs_refresh(threshold):
                return result(
                    RefreshStatus.STILL_VALID,
                    f"Token valid until {connection.expires_at.isoformat()}",
                )

            logger.info(
                "Refreshing token for %s (expires %s)",
                connection.tenant_name,
                connection.expires_at.isoformat(),
            )
            try:
                await self._refresh(connection)
            except TokenDecryptionError:
                await self.deactivate(connection)
                return result(
                    RefreshStatus.DEACTIVATED,
                    "Stored refresh token unreadable - user needs to reconnect",
                )
            except XeroOAuthError as e:
                logger.error(
                    "Token refresh failed for %s: %s (%s)",
                    connection.tenant_name,
                    e.status_code,
                    e.error_code,
                )
                if e.is_permanent:
                    await self.deactivate(connection)
                    return result(
                        RefreshStatus.DEACTIVATED,
                        "Refresh token expired or revoked - user needs to reconnect",
                    )
                connection.token_refreshing_at = None
                await self.db.commit()
                return result(RefreshStatus.FAILED, f"Refresh failed: {e.status_code}")

        return result(
            RefreshStatus.REFRESHED,
            "Token refreshed successfully",
            new_expiry=connection.expires_at,
        )

    async def _decrypt_access_token(self, connection: XeroConnection) -> Optional[str]:
        try:
            return decrypt_token(connection.access_token)
        except TokenDecryptionError:
            logger.error("Stored access token for %s is unreadable", connection.tenant_name)
            await self.deactivate(connection)
            return None

    async def _refresh(self, connection: XeroConnection) -> str:
        """
        Exchange the refresh token and persist the rotated pair.

        The previous refresh token is dead as soon as Xero answers, so the
        new pair is committed immediately.

        Raises:
            XeroOAuthError: If Xero rejects the refresh
            TokenDecryptionError: If the stored refresh token is unreadable
        """
        refresh_token = decrypt_token(connection.refresh_token)

        connection.token_refreshing_at = datetime.now(timezone.utc)
        await self.db.commit()

        tokens = await self.oauth.refresh_tokens(refresh_token)

        connection.access_token = encrypt_token(tokens["access_token"])
        connection.refresh_token = encrypt_token(tokens["refresh_token"])
        connection.expires_at = XeroOAuth.calculate_expiry(tokens["expires_in"])
        connection.token_refreshing_at = None
        await self.db.commit()

        logger.info(
            "Token refreshed for %s, new expiry %s",
            connection.tenant_name,
            connection.expires_at.isoformat(),
        )
        return tokens["access_token"]

    async def deactivate(self, connection: XeroConnection) -> None:
        """Mark a connection inactive; the user has to reconnect."""
        connection.is_active = False
        connection.token_refreshing_at = None
        await self.db.commit()
        logger.warning(
            "Xero connection %s for business %s deactivated",
            connection.id,
            connection.business_id,
        )

    async def mark_synced(
        self,
        connection: XeroConnection,
        synced_at: Optional[datetime] = None,
    ) -> None:
        connection.last_synced_at = synced_at or datetime.now(timezone.utc)
        await self.db.commit()

    async def disconnect(self, business_id: UUID) -> bool:
        """
        Disconnect Xero (revoke tokens and delete record).

        Args:
            business_id: Business UUID

        Returns:
            True if successful, False if no connection existed
        """
        connection = await self.get_connection_by_business(business_id)

        if not connection:
            return False

        # Revocation is best effort; the local record goes either way
        try:
            await self.oauth.revoke_token(decrypt_token(connection.refresh_token))
        except (XeroOAuthError, TokenDecryptionError, httpx.HTTPError) as e:
            logger.warning("Token revocation failed for business %s: %s", business_id, e)

        await self.db.execute(
            delete(XeroConnection).where(XeroConnection.business_id == business_id)
        )
        await self.db.commit()
        TokenRefreshLock.release_lock(connection.id)

        logger.info("Disconnected Xero for business %s", business_id)
        return True
