"""
Profit & Loss Fetcher
Fetches the monthly Profit & Loss report from Xero.
"""

import logging
from datetime import date
from typing import Any, Optional

from app.config import settings
from app.integrations.xero.fetchers.base import BaseFetcher
from app.integrations.xero.utils import get_sync_date_range

logger = logging.getLogger(__name__)


class ProfitLossFetcher(BaseFetcher):
    """Fetcher for Profit & Loss reports."""

    ENDPOINT = "/api.xro/2.0/Reports/ProfitAndLoss"

    async def fetch(
        self,
        from_date: date,
        to_date: date,
        periods: Optional[int] = None,
    ) -> Optional[dict[str, Any]]:
        """
        Fetch the P&L report with one column per month.

        Args:
            from_date: Start of the range
            to_date: End of the range
            periods: Number of monthly periods (defaults to the sync window)

        Returns:
            Reports[0] as Xero returns it, or None when the response holds no report

        Raises:
            XeroDataFetchError: On non-2xx responses (not retried)
        """
        params = {
            "fromDate": from_date.isoformat(),
            "toDate": to_date.isoformat(),
            "periods": periods or settings.xero_sync_months,
            "timeframe": "MONTH",
        }

        logger.info(
            "Fetching P&L for tenant %s: %s to %s",
            self.tenant_id,
            params["fromDate"],
            params["toDate"],
        )
        data = await self._get(self.ENDPOINT, params=params)

        reports = data.get("Reports") if isinstance(data, dict) else None
        if not reports:
            return None
        return reports[0]

    async def fetch_recent(
        self,
        months: Optional[int] = None,
        today: Optional[date] = None,
    ) -> Optional[dict[str, Any]]:
        """Fetch the last N months (sync window by default) up to today."""
        months = months or settings.xero_sync_months
        from_date, to_date = get_sync_date_range(months, today)
        return await self.fetch(from_date, to_date, periods=months)
