"""
Base Fetcher
Common functionality for all Xero data fetchers.
"""

import logging
from typing import Any, Optional

import httpx

from app.config import settings
from app.integrations.xero.exceptions import XeroDataFetchError

logger = logging.getLogger(__name__)


class BaseFetcher:
    """Base class for all Xero data fetchers."""

    BASE_URL = "https://api.xero.com"

    def __init__(
        self,
        access_token: str,
        tenant_id: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize base fetcher.

        Args:
            access_token: Valid (already refreshed) Xero access token
            tenant_id: Xero tenant the requests are scoped to
            transport: Optional httpx transport (tests use httpx.MockTransport)
            timeout: Request timeout in seconds
        """
        self.access_token = access_token
        self.tenant_id = tenant_id
        self._transport = transport
        self._timeout = timeout or settings.xero_request_timeout_seconds

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "xero-tenant-id": self.tenant_id,
            "Accept": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.BASE_URL,
            transport=self._transport,
            timeout=self._timeout,
        )

    async def _send(
        self,
        client: httpx.AsyncClient,
        path: str,
        params: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        try:
            return await client.get(path, params=params, headers=self.headers)
        except httpx.HTTPError as e:
            logger.error("Xero request to %s failed: %s", path, e)
            raise XeroDataFetchError(f"Request to Xero failed: {e}", endpoint=path) from e

    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        GET a Xero endpoint and return its JSON body.

        Raises:
            XeroDataFetchError: On transport failure or any non-2xx response
        """
        async with self._client() as client:
            response = await self._send(client, path, params)

        if not response.is_success:
            logger.error(
                "Xero API error %d on %s: %s",
                response.status_code,
                path,
                response.text[:500],
            )
            raise XeroDataFetchError(
                f"API error: {response.status_code}",
                status_code=response.status_code,
                endpoint=path,
                body=response.text,
            )

        return response.json()
