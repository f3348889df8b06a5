"""Shared test infrastructure for the Houses BC test suite.

Provides:
- db_session: async SQLite in-memory session with all tables created
- make_client: builds an HTTPX AsyncClient on a minimal app with given routers
- make_user: factory for User rows
- auth_headers: bearer token headers for a user
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from houses_bc.infra.database import Base, get_db

import houses_bc.domain.models  # noqa: F401

from houses_bc.app.handlers import install_handlers
from houses_bc.domain.models import User
from houses_bc.services.auth_service import create_access_token


# ---------------------------------------------------------------------------
# Database session fixture
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_session():
    """Async SQLite in-memory session with all tables created.

    Creates a fresh engine + tables for each test, yields a session,
    then rolls back and tears down.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


# ---------------------------------------------------------------------------
# HTTP client factory
# ---------------------------------------------------------------------------

@pytest.fixture
def make_client(db_session):
    """Factory that wires routers into a test app sharing ``db_session``.

    Usage:
        async with make_client(offers_router) as client:
            resp = await client.post("/api/offers", json=...)
    """
    def _factory(*routers, headers: dict | None = None) -> AsyncClient:
        test_app = FastAPI()
        install_handlers(test_app)
        for router in routers:
            test_app.include_router(router)

        async def _override_get_db():
            yield db_session

        test_app.dependency_overrides[get_db] = _override_get_db

        return AsyncClient(
            transport=ASGITransport(app=test_app),
            base_url="http://testserver",
            headers=headers or {},
        )

    return _factory


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db_session):
    """Factory that creates a verified User row.

    Usage:
        admin = await make_user(role="admin", phone="+16045550000")
    """
    async def _factory(
        phone: str = "+16045551234",
        role: str = "client",
        name: str = "Test Client",
        email: str | None = None,
    ) -> User:
        user = User(phone_number=phone, role=role, name=name, email=email, verified=True)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _factory


def auth_headers(user: User) -> dict:
    """Authorization header carrying a freshly issued token for ``user``."""
    token = create_access_token(user.id, user.role, user.phone_number)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def bearer():
    return auth_headers


# ---------------------------------------------------------------------------
# SMS service mock
# ---------------------------------------------------------------------------

@pytest.fixture
def sms_service_mock():
    """Mock SMSService that captures outbound messages as (to, body) tuples."""
    mock = MagicMock()
    mock.sent = []

    async def _capture_send(to_number: str, message: str):
        mock.sent.append((to_number, message))
        return {"sid": "SM123"}

    mock.send_sms = AsyncMock(side_effect=_capture_send)
    return mock
