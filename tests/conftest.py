"""Pytest configuration and shared fixtures.

Tests run against a throwaway SQLite file through aiosqlite. Settings are read
at import time, so the environment is prepared before any ``app`` import.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path

_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="dropdaily-tests-"))
TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DB_DIR / 'test.db'}"
)

os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("JWT_SECRET_KEY", "Test-Secret-Key-For-DropDaily-1234!")
os.environ.setdefault("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "60")
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("REDIS_HOST", None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool  # noqa: E402

from app.core import config  # noqa: E402
from app.core.auth import create_access_token  # noqa: E402
from app.core.rate_limit import limiter  # noqa: E402
from app.db import models as _models  # noqa: E402, F401
from app.db.base import Base  # noqa: E402
from app.db.models.topic import Topic  # noqa: E402
from app.db.models.user import User, UserRole  # noqa: E402
from app.db.session import enable_sqlite_foreign_keys  # noqa: E402
from app.main import create_app  # noqa: E402
from app.services.auth_service import AuthService  # noqa: E402
from app.services.topic_service import TopicService  # noqa: E402

UserFactory = Callable[..., Awaitable[User]]


@pytest.fixture(autouse=True)
def reset_rate_limits() -> None:
    """Every test starts with empty rate limit counters."""
    limiter.reset()


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncIterator[AsyncEngine]:
    """Creates the schema for one test and drops it afterwards."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool)
    if TEST_DATABASE_URL.startswith("sqlite"):
        enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session_maker(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(
    test_session_maker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Session for arranging and checking data; commit before calling the API."""
    async with test_session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def topics(db_session: AsyncSession) -> dict[str, Topic]:
    """The default topic catalogue, keyed by name."""
    service = TopicService(db_session)
    await service.initialize_topics()
    await db_session.commit()
    return {topic.name: topic for topic in await service.list_topics()}


@pytest_asyncio.fixture(scope="function")
async def make_user(db_session: AsyncSession) -> UserFactory:
    """Factory that stores a user (committed) and returns it."""

    async def _make_user(
        email: str = "user@example.com",
        password: str = "password123",
        role: UserRole = UserRole.USER,
        is_onboarded: bool = False,
    ) -> User:
        user = await AuthService(db_session).register_user(email, password, role=role)
        user.is_onboarded = is_onboarded
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Bearer headers for a stored user."""

    def _headers(user: User) -> dict[str, str]:
        token = create_access_token(data={"sub": user.id, "role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture(scope="function")
async def async_app(test_engine: AsyncEngine) -> AsyncIterator[FastAPI]:
    """App wired to the test database; tables exist before the first request."""
    config.settings.environment = "test"
    config.settings.database_url = TEST_DATABASE_URL

    fastapi_app = create_app()

    yield fastapi_app


@pytest_asyncio.fixture(scope="function")
async def async_http_client(async_app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Creates an async http client."""
    transport = ASGITransport(app=async_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


# Synchronous fixtures (function-scoped, for synchronous tests that don't need database access)


@pytest.fixture(scope="function")
def app() -> FastAPI:
    """Creates a FastAPI app for synchronous tests that never touch the database."""
    config.settings.environment = "test"
    config.settings.database_url = TEST_DATABASE_URL

    fastapi_app = create_app()

    return fastapi_app


@pytest.fixture(scope="function")
def http_client(app: FastAPI) -> TestClient:
    """Creates a synchronous http client."""
    return TestClient(app)
