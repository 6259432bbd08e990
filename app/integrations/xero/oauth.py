"""
Xero OAuth 2.0 Utilities
Handles authorization URL generation, token exchange, refresh and revocation.
"""

import base64
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


class XeroOAuthError(Exception):
    """Custom exception for Xero OAuth errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(self.message)

    @property
    def is_permanent(self) -> bool:
        """
        Whether the refresh token is unusable (expired, revoked or rejected).
        Transient failures (5xx, 429) are not permanent.
        """
        return self.error_code == "invalid_grant" or self.status_code == 400


class XeroOAuth:
    """
    Xero OAuth 2.0 client.

    Handles:
    - Authorization URL generation
    - Authorization code exchange for tokens
    - Token refresh (Xero rotates the refresh token on every refresh)
    - Token revocation
    - Tenant lookup
    """

    AUTHORIZATION_URL = "https://login.xero.com/identity/connect/authorize"
    TOKEN_URL = "https://identity.xero.com/connect/token"
    CONNECTIONS_URL = "https://api.xero.com/connections"
    REVOCATION_URL = "https://identity.xero.com/connect/revocation"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.client_id = settings.xero_client_id
        self.client_secret = settings.xero_client_secret
        self.redirect_uri = settings.xero_redirect_uri
        self.scopes = settings.xero_scopes
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=settings.xero_request_timeout_seconds,
        )

    @staticmethod
    def generate_state() -> str:
        """Generate a cryptographically secure state parameter."""
        return secrets.token_urlsafe(32)

    def get_authorization_url(self, state: str) -> str:
        """
        Generate the Xero authorization URL.

        Args:
            state: CSRF protection token (kept in the state store)

        Returns:
            Full authorization URL to redirect user to
        """
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self.scopes,
            "state": state,
        }
        return f"{self.AUTHORIZATION_URL}?{urlencode(params)}"

    def _get_auth_header(self) -> str:
        """Generate Basic auth header for token requests."""
        credentials = f"{self.client_id}:{self.client_secret}"
        encoded = base64.b64encode(credentials.encode()).decode()
        return f"Basic {encoded}"

    @staticmethod
    def _error_from_response(response: httpx.Response, fallback: str) -> XeroOAuthError:
        try:
            error_data = response.json() if response.content else {}
        except ValueError:
            error_data = {}
        if not isinstance(error_data, dict):
            error_data = {}
        return XeroOAuthError(
            message=error_data.get("error_description") or fallback,
            error_code=error_data.get("error", "unknown_error"),
            status_code=response.status_code,
        )

    async def _post_token(self, data: dict, fallback_error: str) -> dict:
        async with self._client() as client:
            response = await client.post(
                self.TOKEN_URL,
                headers={
                    "Authorization": self._get_auth_header(),
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                data=data,
            )

        if not response.is_success:
            raise self._error_from_response(response, fallback_error)

        return response.json()

    async def exchange_code_for_tokens(self, code: str) -> dict:
        """
        Exchange authorization code for access and refresh tokens.

        Returns:
            Token response with access_token, refresh_token, expires_in,
            token_type, scope and optionally id_token

        Raises:
            XeroOAuthError: If token exchange fails
        """
        return await self._post_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            },
            "Token exchange failed",
        )

    async def refresh_tokens(self, refresh_token: str) -> dict:
        """
        Exchange a refresh token for a new access/refresh pair.

        The submitted refresh token is invalidated by Xero as soon as this
        call succeeds.

        Raises:
            XeroOAuthError: If refresh fails
        """
        return await self._post_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
            "Token refresh failed",
        )

    async def get_connections(self, access_token: str) -> list[dict]:
        """
        Get list of authorized Xero tenants (organizations).

        Raises:
            XeroOAuthError: If request fails
        """
        async with self._client() as client:
            response = await client.get(
                self.CONNECTIONS_URL,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                },
            )

        if not response.is_success:
            raise XeroOAuthError(
                message="Failed to fetch Xero connections",
                error_code="connection_error",
                status_code=response.status_code,
            )

        return response.json()

    async def revoke_token(self, token: str) -> bool:
        """
        Revoke a refresh token.

        Raises:
            XeroOAuthError: If revocation fails
        """
        async with self._client() as client:
            response = await client.post(
                self.REVOCATION_URL,
                headers={
                    "Authorization": self._get_auth_header(),
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                data={"token": token},
            )

        # Xero returns 200 even if token is already revoked
        if response.status_code not in (200, 204):
            raise XeroOAuthError(
                message="Token revocation failed",
                error_code="revocation_error",
                status_code=response.status_code,
            )

        return True

    @staticmethod
    def calculate_expiry(expires_in: int, now: Optional[datetime] = None) -> datetime:
        """Absolute, timezone-aware expiry from an expires_in seconds value."""
        now = now or datetime.now(timezone.utc)
        return now + timedelta(seconds=int(expires_in))


# Singleton instance for convenience
xero_oauth = XeroOAuth()
