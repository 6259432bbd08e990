"""
Xero Integration Package
OAuth 2.0 connection, token lifecycle and monthly P&L sync with the Xero API.

The router lives in app.integrations.xero.router and is mounted by app.main.
"""

from app.integrations.xero.oauth import XeroOAuth
from app.integrations.xero.service import XeroConnectionService
from app.integrations.xero.state_store import oauth_state_store
from app.integrations.xero.sync_service import XeroSyncService

__all__ = [
    "XeroConnectionService",
    "XeroOAuth",
    "XeroSyncService",
    "oauth_state_store",
]
