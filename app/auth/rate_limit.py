"""
Rate Limiting Utilities
Rate limiting configuration for user-triggered Xero calls.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

# Manual syncs each cost one Xero report call
SYNC_RATE_LIMIT = "5/minute"
