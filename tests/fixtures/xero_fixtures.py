# tests/fixtures/xero_fixtures.py
"""Test fixtures for Xero integration tests."""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import pytest

from app.core.encryption import encrypt_token
from app.models import XeroConnection

ConnectionFactory = Callable[..., XeroConnection]


@pytest.fixture
def make_connection(test_business_id: uuid.UUID) -> ConnectionFactory:
    """
    Build XeroConnection rows with encrypted tokens.

    ``expires_in`` is relative to now; any column can be overridden.
    """

    def _make(
        expires_in: timedelta = timedelta(hours=1),
        business_id: Optional[uuid.UUID] = None,
        access_token: str = "current-access-token",
        refresh_token: str = "current-refresh-token",
        **overrides: Any,
    ) -> XeroConnection:
        values: Dict[str, Any] = {
            "id": uuid.uuid4(),
            "business_id": business_id or test_business_id,
            "user_id": None,
            "tenant_id": "test-tenant-id",
            "tenant_name": "Test Organisation",
            "access_token": encrypt_token(access_token),
            "refresh_token": encrypt_token(refresh_token),
            "expires_at": datetime.now(timezone.utc) + expires_in,
            "is_active": True,
            "last_synced_at": None,
            "token_refreshing_at": None,
        }
        values.update(overrides)
        return XeroConnection(**values)

    return _make


@pytest.fixture
def active_connection(make_connection: ConnectionFactory) -> XeroConnection:
    """Connection whose access token is valid for another hour."""
    return make_connection()


@pytest.fixture
def expiring_connection(make_connection: ConnectionFactory) -> XeroConnection:
    """Connection whose access token expires inside the refresh buffer."""
    return make_connection(expires_in=timedelta(minutes=4))


@pytest.fixture
def xero_token_response_data() -> Dict[str, Any]:
    """Mock Xero token response data."""
    return {
        "access_token": "new-access-token-12345",
        "refresh_token": "new-refresh-token-12345",
        "expires_in": 1800,
        "token_type": "Bearer",
        "scope": "openid profile email offline_access accounting.reports.read",
    }


@pytest.fixture
def xero_tenants_data() -> list[Dict[str, Any]]:
    """Mock response of the Xero connections endpoint."""
    return [
        {
            "id": "connection-id-1",
            "tenantId": "test-tenant-id",
            "tenantType": "ORGANISATION",
            "tenantName": "Test Organisation",
        }
    ]


def _cells(*values: str) -> list[Dict[str, str]]:
    return [{"Value": value} for value in values]


@pytest.fixture
def pl_report_data() -> Dict[str, Any]:
    """
    Two-month P&L report in the shape Xero returns (Reports[0]).
    """
    return {
        "ReportID": "ProfitAndLoss",
        "ReportName": "Profit and Loss",
        "Rows": [
            {"RowType": "Header", "Cells": _cells("", "Jan 2024", "Feb 2024")},
            {
                "RowType": "Section",
                "Title": "Income",
                "Rows": [
                    {"RowType": "Row", "Cells": _cells("Sales", "1000", "1500")},
                    {"RowType": "Row", "Cells": _cells("Consulting", "250.50", "")},
                    {"RowType": "SummaryRow", "Cells": _cells("Total Income", "1250.50", "1500")},
                ],
            },
            {
                "RowType": "Section",
                "Title": "Less Cost of Sales",
                "Rows": [
                    {"RowType": "Row", "Cells": _cells("Purchases", "400", "600")},
                ],
            },
            {"RowType": "Section", "Title": "Gross Profit", "Rows": []},
            {
                "RowType": "Section",
                "Title": "Less Operating Expenses",
                "Rows": [
                    {"RowType": "Row", "Cells": _cells("Rent", "300", "300")},
                    {"RowType": "Row", "Cells": _cells("Bank Fees", "n/a", "(12.50)")},
                ],
            },
            {
                "RowType": "Section",
                "Title": "Plus Other Income",
                "Rows": [
                    {"RowType": "Row", "Cells": _cells("Interest Income", "5", "5")},
                ],
            },
            {
                "RowType": "Section",
                "Title": "",
                "Rows": [
                    {"RowType": "Row", "Cells": _cells("Net Profit", "555.50", "617.50")},
                ],
            },
        ],
    }


@pytest.fixture
def pl_response_data(pl_report_data: Dict[str, Any]) -> Dict[str, Any]:
    """Full ProfitAndLoss endpoint response body."""
    return {"Status": "OK", "Reports": [pl_report_data]}


@pytest.fixture
def payroll_employees_data() -> Dict[str, Any]:
    return {
        "Employees": [
            {
                "EmployeeID": "emp-2",
                "FirstName": "Zoe",
                "LastName": "Walker",
                "Status": "ACTIVE",
                "StartDate": "/Date(1577836800000+0000)/",
                "Email": "zoe@example.com",
            },
            {
                "EmployeeID": "emp-1",
                "FirstName": "Adam",
                "LastName": "Brown",
                "Status": "ACTIVE",
                "JobTitle": "Technician",
            },
            {
                "EmployeeID": "emp-3",
                "FirstName": "Terry",
                "LastName": "Former",
                "Status": "TERMINATED",
                "TerminationDate": "/Date(1704067200000+0000)/",
            },
        ]
    }
