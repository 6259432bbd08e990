"""
Xero Sync Service
Refresh → fetch → normalize → persist for one connection, and the
batch driver that walks every active connection.

Connections are processed strictly one after another with a fixed pause
between them to stay under Xero's per-app rate limits.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional
from uuid import UUID

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.integrations.xero.exceptions import (
    PLPersistenceError,
    TokenRefreshError,
    XeroDataFetchError,
    XeroReportMissingError,
)
from app.integrations.xero.fetchers import ProfitLossFetcher
from app.integrations.xero.parsers import ProfitLossParser
from app.integrations.xero.pl_repository import PLLineRepository
from app.integrations.xero.service import RefreshResult, RefreshStatus, XeroConnectionService
from app.models.xero_connection import XeroConnection

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class SyncResult:
    """Outcome of syncing one connection."""

    business_id: UUID
    tenant_name: Optional[str]
    status: SyncStatus
    message: str
    accounts_synced: Optional[int] = None
    months_synced: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status == SyncStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["business_id"] = str(self.business_id)
        data["status"] = self.status.value
        return data


@dataclass
class BatchSyncResult:
    results: list[SyncResult] = field(default_factory=list)

    @property
    def summary(self) -> dict[str, int]:
        return {
            "total": len(self.results),
            "success": sum(1 for r in self.results if r.status == SyncStatus.SUCCESS),
            "failed": sum(1 for r in self.results if r.status == SyncStatus.FAILED),
            "skipped": sum(1 for r in self.results if r.status == SyncStatus.SKIPPED),
        }


@dataclass
class BatchRefreshResult:
    results: list[RefreshResult] = field(default_factory=list)

    @property
    def summary(self) -> dict[str, int]:
        counts = {"total": len(self.results)}
        for status in RefreshStatus:
            counts[status.value] = sum(1 for r in self.results if r.status == status)
        return counts


class XeroSyncService:
    """Runs P&L syncs and the batch jobs built on them."""

    def __init__(
        self,
        db: AsyncSession,
        connection_service: Optional[XeroConnectionService] = None,
        repository: Optional[PLLineRepository] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.db = db
        self.connections = connection_service or XeroConnectionService(db)
        self.repository = repository or PLLineRepository(db)
        self._transport = transport

    async def run_sync(
        self,
        connection: XeroConnection,
        today: Optional[date] = None,
    ) -> SyncResult:
        """
        Sync one connection, raising on failure.

        Raises:
            TokenRefreshError: Token could not be refreshed (connection deactivated)
            XeroDataFetchError: Xero answered with a non-2xx status
            XeroReportMissingError: Xero returned no report
            PLPersistenceError: Lines could not be stored
        """
        access_token = await self.connections.get_valid_access_token(connection)
        if not access_token:
            raise TokenRefreshError()

        fetcher = ProfitLossFetcher(
            access_token,
            connection.tenant_id,
            transport=self._transport,
        )
        report = await fetcher.fetch_recent(settings.xero_sync_months, today=today)
        if report is None:
            raise XeroReportMissingError()

        lines = ProfitLossParser.normalize(report, connection.business_id)
        stored = await self.repository.replace_lines(connection.business_id, lines)
        await self.connections.mark_synced(connection)

        months = ProfitLossParser.count_months(lines)
        logger.info(
            "Synced %d accounts over %d months for %s",
            stored,
            months,
            connection.tenant_name,
        )
        return SyncResult(
            business_id=connection.business_id,
            tenant_name=connection.tenant_name,
            status=SyncStatus.SUCCESS,
            message="Sync completed",
            accounts_synced=stored,
            months_synced=months,
        )

    async def sync_connection(
        self,
        connection: XeroConnection,
        today: Optional[date] = None,
    ) -> SyncResult:
        """
        Sync one connection and report the outcome instead of raising.

        A failure may roll the session back, which expires the connection,
        so results and logs only use values read before the sync starts.

        Returns:
            SyncResult with status success or failed and a readable message
        """
        business_id = connection.business_id
        tenant_name = connection.tenant_name

        def failed(message: str) -> SyncResult:
            return SyncResult(
                business_id=business_id,
                tenant_name=tenant_name,
                status=SyncStatus.FAILED,
                message=message,
            )

        try:
            return await self.run_sync(connection, today=today)
        except (TokenRefreshError, XeroReportMissingError, PLPersistenceError) as e:
            logger.error("Sync failed for %s: %s", tenant_name, e.message)
            return failed(e.message)
        except XeroDataFetchError as e:
            logger.error("P&L fetch failed for %s: %s", tenant_name, e.body or e.message)
            if e.status_code is None:
                return failed(e.message)
            return failed(f"API error: {e.status_code}")
        except Exception as e:
            logger.exception("Unexpected error syncing %s", tenant_name)
            await self.db.rollback()
            return failed(str(e) or e.__class__.__name__)

    async def sync_all(self, today: Optional[date] = None) -> BatchSyncResult:
        """
        Sync every active connection, one at a time.

        One connection's failure is recorded and the loop moves on. Each
        connection is re-read before its turn, since a rollback for an
        earlier one expires every instance in the session.
        """
        connection_ids = [
            connection.id for connection in await self.connections.list_active_connections()
        ]
        logger.info("Starting sync for %d active Xero connections", len(connection_ids))

        batch = BatchSyncResult()
        delay = settings.xero_sync_delay_ms / 1000

        for index, connection_id in enumerate(connection_ids):
            if index:
                await asyncio.sleep(delay)

            connection = await self.connections.get_connection(connection_id)
            if connection is None or not connection.is_active:
                logger.info("Connection %s went away during the batch", connection_id)
                continue

            if not connection.tenant_id:
                batch.results.append(
                    SyncResult(
                        business_id=connection.business_id,
                        tenant_name=connection.tenant_name,
                        status=SyncStatus.SKIPPED,
                        message="No tenant ID",
                    )
                )
                continue

            batch.results.append(await self.sync_connection(connection, today=today))

        logger.info("Sync complete: %s", batch.summary)
        return batch

    async def refresh_all(self) -> BatchRefreshResult:
        """Proactively refresh tokens of every active connection."""
        connection_ids = [
            connection.id for connection in await self.connections.list_active_connections()
        ]
        logger.info("Starting token refresh for %d active Xero connections", len(connection_ids))

        batch = BatchRefreshResult()
        delay = settings.xero_refresh_delay_ms / 1000

        for index, connection_id in enumerate(connection_ids):
            if index:
                await asyncio.sleep(delay)

            connection = await self.connections.get_connection(connection_id)
            if connection is None or not connection.is_active:
                logger.info("Connection %s went away during the batch", connection_id)
                continue

            business_id = connection.business_id
            tenant_name = connection.tenant_name

            try:
                result = await self.connections.refresh_if_expiring(connection)
            except Exception as e:
                logger.exception("Token refresh errored for %s", tenant_name)
                await self.db.rollback()
                result = RefreshResult(
                    business_id=business_id,
                    tenant_name=tenant_name,
                    status=RefreshStatus.FAILED,
                    message=str(e) or e.__class__.__name__,
                )
            batch.results.append(result)

        logger.info("Token refresh complete: %s", batch.summary)
        return batch
