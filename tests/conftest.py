"""
Global pytest configuration and fixtures for the Xero sync test suite.
"""

import os
import uuid
from typing import AsyncGenerator
from unittest.mock import AsyncMock, Mock

from cryptography.fernet import Fernet

# Set test environment variables before app settings are loaded
os.environ["ENVIRONMENT"] = "test"
os.environ["TOKEN_ENCRYPTION_KEY"] = Fernet.generate_key().decode()
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["XERO_CLIENT_ID"] = "test-client-id"
os.environ["XERO_CLIENT_SECRET"] = "test-client-secret"
os.environ["APP_URL"] = "http://app.test"
os.environ["SUPABASE_JWT_SECRET"] = "test-supabase-jwt-secret"

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.auth.dependencies import get_authorized_business, get_current_user_id
from app.auth.rate_limit import limiter
from app.database import Base, get_async_session
from app.integrations.xero.state_store import OAuthStateStore
from app.integrations.xero.token_refresh_lock import TokenRefreshLock
from app.main import app
from app.models import Business

# Import fixtures from fixture modules
from tests.fixtures.xero_fixtures import *  # noqa: F403, F401


@pytest.fixture(autouse=True)
def reset_in_memory_state() -> None:
    """Class-level stores must not leak between tests."""
    OAuthStateStore.clear()
    TokenRefreshLock.clear()
    limiter.reset()


@pytest.fixture
def test_user_id() -> uuid.UUID:
    """Standard test user (business owner)."""
    return uuid.UUID("7b0c1a52-3f5e-4c59-9d59-1c1a7a0f3b11")


@pytest.fixture
def test_business_id() -> uuid.UUID:
    """Standard test business ID."""
    return uuid.UUID("42f929b1-8fdb-45b1-a7cf-34fae2314561")


@pytest.fixture
def test_business(test_business_id: uuid.UUID, test_user_id: uuid.UUID) -> Business:
    return Business(
        id=test_business_id,
        name="Test Coaching Client",
        owner_id=test_user_id,
        assigned_coach_id=None,
    )


@pytest.fixture
def mock_db() -> Mock:
    """
    Mock AsyncSession for unit tests that don't need a real database.
    """
    db = Mock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.get = AsyncMock()
    db.add = Mock()
    db.add_all = Mock()
    return db


@pytest.fixture
def client(
    mock_db: Mock,
    test_business: Business,
    test_user_id: uuid.UUID,
) -> TestClient:
    """
    FastAPI test client with auth and database dependencies overridden.
    """

    async def override_session() -> AsyncGenerator[Mock, None]:
        yield mock_db

    app.dependency_overrides[get_async_session] = override_session
    app.dependency_overrides[get_current_user_id] = lambda: test_user_id
    app.dependency_overrides[get_authorized_business] = lambda: test_business

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def cron_headers() -> dict[str, str]:
    return {"Authorization": "Bearer test-cron-secret"}


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Real AsyncSession on an in-memory SQLite database.

    Configured like the application's session factory, so rollbacks
    expire loaded instances exactly as they do in production.
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session

    await engine.dispose()
