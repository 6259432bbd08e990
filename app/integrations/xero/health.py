"""
Connection Health
Token expiry and sync staleness checks for Xero connections.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from app.models.xero_connection import XeroConnection, as_utc

TOKEN_WARNING_WINDOW = timedelta(minutes=5)
STALE_SYNC_AFTER = timedelta(hours=24)


@dataclass
class ConnectionHealth:
    is_healthy: bool
    expires_in_minutes: int
    warnings: list[str] = field(default_factory=list)


def check_connection_health(
    connection: XeroConnection,
    now: Optional[datetime] = None,
) -> ConnectionHealth:
    """
    Token-level health of one connection.

    Healthy means active with an unexpired access token.
    """
    now = now or datetime.now(timezone.utc)
    expires_in = connection.expires_in(now)
    warnings: list[str] = []

    if not connection.is_active:
        warnings.append("Connection is inactive")

    if expires_in <= timedelta(0):
        warnings.append("Access token has expired")
    elif expires_in < TOKEN_WARNING_WINDOW:
        warnings.append("Access token expires in less than 5 minutes")

    return ConnectionHealth(
        is_healthy=connection.is_active and expires_in > timedelta(0),
        expires_in_minutes=int(expires_in.total_seconds() // 60),
        warnings=warnings,
    )


def find_connection_issues(
    connections: list[XeroConnection],
    now: Optional[datetime] = None,
) -> list[dict[str, Any]]:
    """
    Issues across active connections for the daily health report.

    Flags tokens already inside the refresh window and syncs older
    than 24 hours.
    """
    now = now or datetime.now(timezone.utc)
    issues: list[dict[str, Any]] = []

    for connection in connections:
        if connection.expires_in(now) < TOKEN_WARNING_WINDOW:
            issues.append({
                "business_id": str(connection.business_id),
                "tenant_name": connection.tenant_name,
                "issue": f"Xero token expiring soon (business {connection.business_id})",
            })

        last_synced = connection.last_synced_at
        if last_synced is None or now - as_utc(last_synced) > STALE_SYNC_AFTER:
            issues.append({
                "business_id": str(connection.business_id),
                "tenant_name": connection.tenant_name,
                "issue": f"Xero sync stale (business {connection.business_id})",
            })

    return issues
