"""Shared test fixtures for all tests"""

import os

# Settings are read at import time; these must be set before the package loads
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-automation-engine-0123456789")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from datetime import datetime, timezone
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from automation_engine.models import Base
from automation_engine.services.automation_store import AutomationStore
from tests.factories import FakeMailTransport, FixedClock


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine (in-memory SQLite)"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Cleanup
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create test database session"""
    async_session_factory = sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def store(db_session):
    return AutomationStore(db_session)


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def mail_transport():
    return FakeMailTransport()


@pytest.fixture
def fixed_now():
    return datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now):
    return FixedClock(fixed_now)


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def service_token():
    from automation_engine.core.security import create_service_token
    return create_service_token()


@pytest_asyncio.fixture
async def client(db_session, mail_transport):
    """HTTP client against the app with the test session and fake mail transport"""
    from automation_engine.main import app
    from automation_engine.core.database import get_db
    from automation_engine.api.v1.automations import get_mail_transport

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mail_transport] = lambda: mail_transport

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "asyncio: mark test as async")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "property: mark test as property-based test")
