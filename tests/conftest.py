"""
Async test configuration and fixtures for pytest.

Every test gets its own in-memory SQLite database (aiosqlite) with all tables
created from the model metadata. API tests talk to the app through an httpx
``AsyncClient``; each request gets a fresh session from the same factory, the
way it would from the connection pool in production.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from blogapi.db.async_session import get_async_db
from blogapi.db.base_class import Base
from blogapi.main import app
from blogapi.models.user import Permission
from blogapi.services.async_post import AsyncPostService
from blogapi.services.rss import FeedService
from tests.async_test_utils import AsyncDatabaseTestUtils, AsyncTestDataFactory


@pytest_asyncio.fixture
async def async_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def async_db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for service-level tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def db_utils(async_db_session):
    return AsyncDatabaseTestUtils(async_db_session)


@pytest.fixture
def factory(session_factory):
    return AsyncTestDataFactory(session_factory)


@pytest.fixture(autouse=True)
def feed_service(tmp_path, monkeypatch):
    """Point feed regeneration at a temporary file."""
    service = FeedService(
        feed_path=str(tmp_path / "public" / "rss.xml"),
        site_url="http://blog.test",
        title="Test Blog",
        description="Posts under test",
        size=10,
    )
    monkeypatch.setattr(AsyncPostService, "feed_service", service)
    return service


@pytest_asyncio.fixture
async def async_client(session_factory):
    """FastAPI client with the database dependency pointed at the test engine."""

    async def override_get_async_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_db] = override_get_async_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides = {}


@pytest_asyncio.fixture
async def alice(factory):
    return await factory.create_user("alice")


@pytest_asyncio.fixture
async def bob(factory):
    return await factory.create_user("bob")


@pytest_asyncio.fixture
async def moderator(factory):
    return await factory.create_user("mod", Permission.MODERATOR)


@pytest_asyncio.fixture
async def admin(factory):
    return await factory.create_user("admin", Permission.ADMINISTRATOR)


@pytest_asyncio.fixture
async def alice_post(factory, alice):
    return await factory.create_post(alice, seed="alice")


@pytest_asyncio.fixture
async def eleven_posts(factory, alice):
    """Posts created one minute apart; index 0 is the oldest."""
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    posts = []
    for i in range(11):
        posts.append(await factory.create_post(alice, seed=f"post-{i}", created_at=base + timedelta(minutes=i)))
    return posts
