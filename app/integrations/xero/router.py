"""
Xero Integration Router
API endpoints for the Xero OAuth flow, P&L sync and the scheduled jobs.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import AuthorizedBusiness, CurrentUserId, verify_cron_secret
from app.auth.rate_limit import SYNC_RATE_LIMIT, limiter
from app.config import settings
from app.core.errors import ErrorCode, create_error_response
from app.database import async_session_factory, get_async_session
from app.integrations.xero.exceptions import (
    PLPersistenceError,
    TokenRefreshError,
    XeroDataFetchError,
    XeroReportMissingError,
)
from app.integrations.xero.fetchers import PayrollFetcher
from app.integrations.xero.health import check_connection_health, find_connection_issues
from app.integrations.xero.oauth import XeroOAuth, XeroOAuthError, xero_oauth
from app.integrations.xero.parsers import ProfitLossParser
from app.integrations.xero.pl_repository import PLLineRepository
from app.integrations.xero.schemas import (
    BatchRefreshResponse,
    BatchSyncResponse,
    EmployeesResponse,
    PLLinesResponse,
    XeroAuthURLResponse,
    XeroConnectionStatus,
    XeroDisconnectResponse,
    XeroHealthResponse,
    XeroSyncResponse,
)
from app.integrations.xero.service import XeroConnectionService
from app.integrations.xero.state_store import DEFAULT_RETURN_TO, oauth_state_store
from app.integrations.xero.sync_service import XeroSyncService
from app.models import Business, XeroConnection

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations/xero", tags=["Xero Integration"])


# =============================================================================
# Dependencies
# =============================================================================

async def get_connection_service(
    db: AsyncSession = Depends(get_async_session),
) -> XeroConnectionService:
    """Dependency to get XeroConnectionService instance."""
    return XeroConnectionService(db)


async def get_sync_service(
    db: AsyncSession = Depends(get_async_session),
) -> XeroSyncService:
    """Dependency to get XeroSyncService instance."""
    return XeroSyncService(db)


async def get_pl_repository(
    db: AsyncSession = Depends(get_async_session),
) -> PLLineRepository:
    return PLLineRepository(db)


async def require_active_connection(
    business: Business,
    connection_service: XeroConnectionService,
) -> XeroConnection:
    connection = await connection_service.get_connection_by_business(business.id, active_only=True)
    if not connection:
        raise create_error_response(ErrorCode.XERO_NOT_CONNECTED, connected=False)
    return connection


def _redirect(path: str, **params: str) -> RedirectResponse:
    url = f"{settings.app_url.rstrip('/')}{path}"
    if params:
        separator = "&" if "?" in path else "?"
        url = f"{url}{separator}{urlencode(params)}"
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


async def run_initial_sync(connection_id: UUID) -> None:
    """Background sync right after a connection is created."""
    async with async_session_factory() as session:
        connection = await session.get(XeroConnection, connection_id)
        if connection is None or not connection.is_active:
            return
        result = await XeroSyncService(session).sync_connection(connection)
        logger.info(
            "Initial sync for %s: %s (%s)",
            result.tenant_name,
            result.status.value,
            result.message,
        )


# =============================================================================
# OAuth / Connection
# =============================================================================

@router.get(
    "/connect",
    response_model=XeroAuthURLResponse,
    summary="Start Xero OAuth flow",
    description="Generate authorization URL to redirect user to Xero for consent.",
)
async def connect_xero(
    business: AuthorizedBusiness,
    user_id: CurrentUserId,
    return_to: Optional[str] = Query(
        None,
        description="App path to return to after connecting"
    ),
) -> XeroAuthURLResponse:
    """
    Initiate Xero OAuth 2.0 authorization flow.

    Returns authorization URL and state token.
    Frontend should redirect user to authorization_url.
    """
    state = XeroOAuth.generate_state()
    oauth_state_store.save_state(state, business.id, user_id=user_id, return_to=return_to)

    return XeroAuthURLResponse(
        authorization_url=xero_oauth.get_authorization_url(state),
        state=state,
    )


@router.get(
    "/callback",
    summary="Handle Xero OAuth callback",
    description="Exchange the code for tokens, store the connection and start the first sync.",
)
async def xero_callback(
    background_tasks: BackgroundTasks,
    code: Optional[str] = Query(None, description="Authorization code from Xero"),
    state: Optional[str] = Query(None, description="State token for CSRF validation"),
    error: Optional[str] = Query(None, description="Error returned by Xero"),
    connection_service: XeroConnectionService = Depends(get_connection_service),
) -> RedirectResponse:
    """
    Handle OAuth 2.0 callback from Xero.

    Called by Xero's redirect (no auth required); the state identifies the
    business. Always answers with a redirect back into the app.
    """
    if error:
        logger.info("Xero authorization denied: %s", error)
        return _redirect(DEFAULT_RETURN_TO, error="xero_denied")

    if not code or not state:
        return _redirect(DEFAULT_RETURN_TO, error="missing_params")

    oauth_state = oauth_state_store.consume_state(state)
    if not oauth_state:
        return _redirect(DEFAULT_RETURN_TO, error="invalid_state")

    try:
        token_response = await xero_oauth.exchange_code_for_tokens(code)
    except XeroOAuthError as e:
        logger.error("Xero token exchange failed: %s (%s)", e.message, e.error_code)
        return _redirect(DEFAULT_RETURN_TO, error="token_exchange_failed")

    try:
        tenants = await xero_oauth.get_connections(token_response["access_token"])
    except XeroOAuthError as e:
        logger.error("Fetching Xero tenants failed: %s", e.message)
        return _redirect(DEFAULT_RETURN_TO, error="connections_failed")

    if not tenants:
        return _redirect(DEFAULT_RETURN_TO, error="no_organizations")

    # One Xero organization per business; the first authorized tenant wins
    try:
        connection = await connection_service.save_connection_from_callback(
            business_id=oauth_state.business_id,
            user_id=oauth_state.user_id,
            token_response=token_response,
            tenant=tenants[0],
        )
    except SQLAlchemyError as e:
        logger.error("Failed to store Xero connection: %s", e)
        return _redirect(DEFAULT_RETURN_TO, error="database_error")

    background_tasks.add_task(run_initial_sync, connection.id)

    return _redirect(oauth_state.return_to, success="connected", syncing="true")


@router.get(
    "/status",
    response_model=XeroConnectionStatus,
    summary="Get Xero connection status",
    description="Check if the business has a Xero connection and its token state.",
)
async def get_connection_status(
    business: AuthorizedBusiness,
    connection_service: XeroConnectionService = Depends(get_connection_service),
) -> XeroConnectionStatus:
    connection = await connection_service.get_connection_by_business(business.id)

    if not connection:
        return XeroConnectionStatus(
            is_connected=False,
            status="disconnected",
        )

    return XeroConnectionStatus(
        is_connected=connection.is_active,
        status="active" if connection.is_active else "inactive",
        tenant_id=connection.tenant_id,
        tenant_name=connection.tenant_name,
        connected_at=connection.created_at,
        expires_at=connection.expires_at,
        last_synced_at=connection.last_synced_at,
        needs_refresh=connection.needs_refresh(),
    )


@router.post(
    "/disconnect",
    response_model=XeroDisconnectResponse,
    summary="Disconnect Xero",
    description="Revoke tokens at Xero (best effort) and delete the connection.",
)
async def disconnect_xero(
    business: AuthorizedBusiness,
    connection_service: XeroConnectionService = Depends(get_connection_service),
) -> XeroDisconnectResponse:
    disconnected = await connection_service.disconnect(business.id)

    if not disconnected:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No Xero connection found",
        )

    return XeroDisconnectResponse(
        success=True,
        message="Xero disconnected successfully",
    )


# =============================================================================
# Data
# =============================================================================

@router.post(
    "/sync",
    response_model=XeroSyncResponse,
    summary="Sync P&L data from Xero",
    description="Refresh the token if needed, fetch the monthly P&L and replace stored lines.",
)
@limiter.limit(SYNC_RATE_LIMIT)
async def sync_business(
    request: Request,
    business: AuthorizedBusiness,
    connection_service: XeroConnectionService = Depends(get_connection_service),
    sync_service: XeroSyncService = Depends(get_sync_service),
) -> XeroSyncResponse:
    connection = await require_active_connection(business, connection_service)

    try:
        result = await sync_service.run_sync(connection)
    except TokenRefreshError:
        raise create_error_response(
            ErrorCode.XERO_TOKEN_INVALID,
            expired=True,
            needs_reconnect=True,
        )
    except XeroDataFetchError as e:
        raise create_error_response(
            ErrorCode.XERO_DATA_FETCH_FAILED,
            http_status=status.HTTP_502_BAD_GATEWAY,
            upstream_status=e.status_code,
        )
    except XeroReportMissingError as e:
        raise create_error_response(
            ErrorCode.XERO_DATA_FETCH_FAILED,
            message=e.message,
        )
    except PLPersistenceError:
        raise create_error_response(ErrorCode.DATABASE_ERROR)

    return XeroSyncResponse(
        success=True,
        message=result.message,
        tenant_name=result.tenant_name,
        accounts_synced=result.accounts_synced or 0,
        months_synced=result.months_synced or 0,
    )


@router.get(
    "/pl-lines",
    response_model=PLLinesResponse,
    summary="Get stored P&L lines",
    description="Normalized P&L lines from the last sync with per-month totals.",
)
async def get_pl_lines(
    business: AuthorizedBusiness,
    repository: PLLineRepository = Depends(get_pl_repository),
    connection_service: XeroConnectionService = Depends(get_connection_service),
) -> PLLinesResponse:
    lines = [line.to_dict() for line in await repository.list_lines(business.id)]
    connection = await connection_service.get_connection_by_business(business.id)

    return PLLinesResponse(
        business_id=business.id,
        last_synced_at=connection.last_synced_at if connection else None,
        lines=lines,
        summary=ProfitLossParser.summarize(lines),
    )


@router.get(
    "/employees",
    response_model=EmployeesResponse,
    summary="Get payroll employees",
    description="Employees from Xero Payroll. Organizations without payroll get an empty list.",
)
async def get_employees(
    business: AuthorizedBusiness,
    include_terminated: bool = Query(
        default=False,
        description="Include terminated employees"
    ),
    connection_service: XeroConnectionService = Depends(get_connection_service),
) -> EmployeesResponse:
    connection = await require_active_connection(business, connection_service)

    access_token = await connection_service.get_valid_access_token(connection)
    if not access_token:
        raise create_error_response(
            ErrorCode.XERO_TOKEN_INVALID,
            expired=True,
            needs_reconnect=True,
        )

    fetcher = PayrollFetcher(access_token, connection.tenant_id)
    try:
        result = await fetcher.fetch_employees(include_terminated=include_terminated)
    except XeroDataFetchError as e:
        raise HTTPException(
            status_code=e.status_code or status.HTTP_502_BAD_GATEWAY,
            detail={
                "error": "Failed to fetch employees from Xero",
                "details": e.body or e.message,
            },
        )

    return EmployeesResponse(**result)


# =============================================================================
# Scheduled jobs
# =============================================================================

@router.api_route(
    "/sync-all",
    methods=["GET", "POST"],
    response_model=BatchSyncResponse,
    dependencies=[Depends(verify_cron_secret)],
    summary="Sync all active connections",
    description="Batch job for the scheduler. Connections are synced one at a time.",
)
async def sync_all_connections(
    sync_service: XeroSyncService = Depends(get_sync_service),
) -> BatchSyncResponse:
    batch = await sync_service.sync_all()

    if not batch.results:
        return BatchSyncResponse(
            success=True,
            message="No active Xero connections to sync",
            summary=batch.summary,
        )

    return BatchSyncResponse(
        success=True,
        summary=batch.summary,
        results=[result.to_dict() for result in batch.results],
    )


@router.api_route(
    "/refresh-tokens",
    methods=["GET", "POST"],
    response_model=BatchRefreshResponse,
    dependencies=[Depends(verify_cron_secret)],
    summary="Refresh expiring tokens",
    description="Batch job that refreshes tokens expiring within the proactive window.",
)
async def refresh_all_tokens(
    sync_service: XeroSyncService = Depends(get_sync_service),
) -> BatchRefreshResponse:
    batch = await sync_service.refresh_all()

    if not batch.results:
        return BatchRefreshResponse(
            success=True,
            message="No active Xero connections to refresh",
            summary=batch.summary,
        )

    return BatchRefreshResponse(
        success=True,
        summary=batch.summary,
        results=[result.to_dict() for result in batch.results],
    )


@router.get(
    "/health",
    response_model=XeroHealthResponse,
    dependencies=[Depends(verify_cron_secret)],
    summary="Xero connection health",
    description="Expiring tokens and stale syncs across active connections.",
)
async def connections_health(
    connection_service: XeroConnectionService = Depends(get_connection_service),
) -> XeroHealthResponse:
    now = datetime.now(timezone.utc)
    connections = await connection_service.list_active_connections()

    return XeroHealthResponse(
        active_connections=len(connections),
        healthy_connections=sum(
            1 for connection in connections
            if check_connection_health(connection, now).is_healthy
        ),
        issues=find_connection_issues(connections, now),
        checked_at=now,
    )
