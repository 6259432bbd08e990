# tests/unit/xero/test_health.py
"""
Tests for connection health checks.
"""
from datetime import datetime, timedelta, timezone

from app.integrations.xero.health import check_connection_health, find_connection_issues

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestCheckConnectionHealth:
    """Test suite for single-connection health."""

    def test_healthy_connection(self, make_connection) -> None:
        connection = make_connection(expires_at=NOW + timedelta(minutes=30))

        health = check_connection_health(connection, now=NOW)

        assert health.is_healthy
        assert health.expires_in_minutes == 30
        assert health.warnings == []

    def test_expiring_soon_warns_but_is_healthy(self, make_connection) -> None:
        connection = make_connection(expires_at=NOW + timedelta(minutes=3))

        health = check_connection_health(connection, now=NOW)

        assert health.is_healthy
        assert health.warnings == ["Access token expires in less than 5 minutes"]

    def test_expired_and_inactive(self, make_connection) -> None:
        # Arrange
        connection = make_connection(
            expires_at=NOW - timedelta(minutes=10),
            is_active=False,
        )

        # Act
        health = check_connection_health(connection, now=NOW)

        # Assert
        assert not health.is_healthy
        assert health.warnings == ["Connection is inactive", "Access token has expired"]
        assert health.expires_in_minutes == -10


class TestFindConnectionIssues:
    """Test suite for the batch health report."""

    def test_flags_expiring_tokens_and_stale_syncs(self, make_connection) -> None:
        # Arrange
        fine = make_connection(
            expires_at=NOW + timedelta(minutes=25),
            last_synced_at=NOW - timedelta(hours=2),
        )
        expiring = make_connection(
            expires_at=NOW + timedelta(minutes=2),
            last_synced_at=NOW - timedelta(hours=1),
        )
        stale = make_connection(
            expires_at=NOW + timedelta(minutes=25),
            last_synced_at=NOW - timedelta(hours=30),
        )
        never = make_connection(expires_at=NOW + timedelta(minutes=25), last_synced_at=None)

        # Act
        issues = find_connection_issues([fine, expiring, stale, never], now=NOW)

        # Assert
        messages = [issue["issue"] for issue in issues]
        assert messages == [
            f"Xero token expiring soon (business {expiring.business_id})",
            f"Xero sync stale (business {stale.business_id})",
            f"Xero sync stale (business {never.business_id})",
        ]

    def test_naive_last_synced_is_treated_as_utc(self, make_connection) -> None:
        connection = make_connection(
            expires_at=NOW + timedelta(minutes=25),
            last_synced_at=(NOW - timedelta(hours=1)).replace(tzinfo=None),
        )

        assert find_connection_issues([connection], now=NOW) == []
