"""
Xero Integration Exceptions
Custom exceptions for Xero integration.
"""

from typing import Optional


class XeroDataFetchError(Exception):
    """Non-2xx response (or transport failure) from a Xero data endpoint."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        body: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.endpoint = endpoint
        self.body = body
        super().__init__(self.message)


class TokenRefreshError(Exception):
    """The connection could not produce a valid access token and was deactivated."""

    def __init__(self, message: str = "Token refresh failed - connection deactivated"):
        self.message = message
        super().__init__(self.message)


class XeroReportMissingError(Exception):
    """Xero answered successfully but returned no report."""

    def __init__(self, message: str = "No P&L report returned"):
        self.message = message
        super().__init__(self.message)


class PLPersistenceError(Exception):
    """Storing normalized P&L lines failed."""

    def __init__(self, message: str = "Database insert failed"):
        self.message = message
        super().__init__(self.message)
