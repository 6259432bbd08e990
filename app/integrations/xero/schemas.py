"""
Xero Integration Schemas
Response models for the Xero integration endpoints.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


# =============================================================================
# OAuth / Connection
# =============================================================================

class XeroAuthURLResponse(BaseModel):
    """Response containing Xero authorization URL."""

    authorization_url: str = Field(
        ...,
        description="URL to redirect user to for Xero authorization"
    )
    state: str = Field(
        ...,
        description="State token for CSRF protection"
    )


class XeroConnectionStatus(BaseModel):
    """Xero connection status for a business."""

    is_connected: bool = Field(
        ...,
        description="Whether an active Xero connection exists"
    )
    status: str = Field(
        ...,
        description="Connection status (active, inactive, disconnected)"
    )
    tenant_id: Optional[str] = Field(
        None,
        description="Xero organization identifier"
    )
    tenant_name: Optional[str] = Field(
        None,
        description="Xero organization name"
    )
    connected_at: Optional[datetime] = Field(
        None,
        description="When the connection was established"
    )
    expires_at: Optional[datetime] = Field(
        None,
        description="When the current access token expires"
    )
    last_synced_at: Optional[datetime] = Field(
        None,
        description="When P&L lines were last synced"
    )
    needs_refresh: bool = Field(
        False,
        description="Whether the access token is inside the refresh window"
    )


class XeroDisconnectResponse(BaseModel):
    """Response after disconnecting Xero."""

    success: bool
    message: str


# =============================================================================
# Sync
# =============================================================================

class XeroSyncResponse(BaseModel):
    """Result of a single-business sync."""

    success: bool
    message: str
    tenant_name: Optional[str] = None
    accounts_synced: int = Field(0, description="Number of P&L lines stored")
    months_synced: int = Field(0, description="Distinct months covered")


class SyncResultItem(BaseModel):
    business_id: UUID
    tenant_name: Optional[str] = None
    status: str = Field(..., description="success, failed or skipped")
    message: str
    accounts_synced: Optional[int] = None
    months_synced: Optional[int] = None


class BatchSyncResponse(BaseModel):
    """Result of the scheduled sync of all connections."""

    success: bool
    message: Optional[str] = None
    summary: dict[str, int] = Field(
        default_factory=dict,
        description="Counts: total, success, failed, skipped"
    )
    results: list[SyncResultItem] = Field(default_factory=list)


class RefreshResultItem(BaseModel):
    business_id: UUID
    tenant_name: Optional[str] = None
    status: str = Field(..., description="refreshed, still_valid, failed or deactivated")
    message: str
    new_expiry: Optional[datetime] = None


class BatchRefreshResponse(BaseModel):
    """Result of the proactive token refresh job."""

    success: bool
    message: Optional[str] = None
    summary: dict[str, int] = Field(default_factory=dict)
    results: list[RefreshResultItem] = Field(default_factory=list)


# =============================================================================
# Data
# =============================================================================

class PLLineResponse(BaseModel):
    account_name: str
    account_type: str
    section: str
    monthly_values: dict[str, float]
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MonthlySummaryResponse(BaseModel):
    month: str = Field(..., description="YYYY-MM")
    revenue: float
    cogs: float
    gross_profit: float
    opex: float
    other_income: float
    other_expense: float
    net_profit: float


class PLLinesResponse(BaseModel):
    """Stored P&L lines for a business with per-month totals."""

    business_id: UUID
    last_synced_at: Optional[datetime] = None
    lines: list[PLLineResponse] = Field(default_factory=list)
    summary: list[MonthlySummaryResponse] = Field(default_factory=list)


class EmployeeResponse(BaseModel):
    employee_id: str
    first_name: str
    last_name: str
    full_name: str
    job_title: Optional[str] = None
    start_date: Optional[str] = None
    termination_date: Optional[str] = None
    annual_salary: Optional[float] = None
    hourly_rate: Optional[float] = None
    employment_type: Optional[str] = None
    is_active: bool
    email: Optional[str] = None
    from_xero: bool = True


class EmployeesResponse(BaseModel):
    """Payroll employees, or a soft failure when payroll is unavailable."""

    success: bool
    employees: list[EmployeeResponse] = Field(default_factory=list)
    count: int = 0
    payroll_available: bool
    needs_reconnect: bool = False
    message: Optional[str] = None


# =============================================================================
# Health
# =============================================================================

class ConnectionIssue(BaseModel):
    business_id: UUID
    tenant_name: Optional[str] = None
    issue: str


class XeroHealthResponse(BaseModel):
    """Health of all active Xero connections."""

    active_connections: int
    healthy_connections: int
    issues: list[ConnectionIssue] = Field(default_factory=list)
    checked_at: datetime
