"""Pytest configuration and fixtures."""

import os

# Must be set before the app reads its settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.core.security import create_access_token
from app.database import enable_sqlite_foreign_keys, get_db
from app.explorer import TableExplorer
from app.main import app
from app.models import Base, Campaign, CampaignRegistration, MediaAsset, Translation, User, page_views


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a test database engine on a throwaway SQLite file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Get test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def seeded(db_session) -> AsyncSession:
    """
    Fill the demo tables.

    120 users, 3 campaigns (campaign 1 has registrations), 2 translations,
    3 key-less page views (two share a path) and one media asset.
    """
    await db_session.execute(
        insert(User.__table__),
        [
            {"id": i, "email": f"user{i}@example.com", "full_name": f"User {i}"}
            for i in range(1, 121)
        ],
    )
    await db_session.execute(
        insert(Campaign.__table__),
        [
            {"id": 1, "title": "Clean Water Week", "status": "active"},
            {"id": 2, "title": "School Taps", "status": "draft"},
            {"id": 3, "title": "River Cleanup", "status": "closed"},
        ],
    )
    await db_session.execute(
        insert(CampaignRegistration.__table__),
        [
            {"id": 1, "campaign_id": 1, "user_id": 1},
            {"id": 2, "campaign_id": 1, "user_id": 2},
        ],
    )
    await db_session.execute(
        insert(Translation.__table__),
        [
            {"locale": "en", "key": "nav.donate", "value": "Donate"},
            {"locale": "fr", "key": "nav.donate", "value": "Faire un don"},
        ],
    )
    await db_session.execute(
        insert(page_views),
        [
            {"path": "/", "visitor": "a"},
            {"path": "/", "visitor": "b"},
            {"path": "/donate", "visitor": "a"},
        ],
    )
    await db_session.execute(
        insert(MediaAsset.__table__),
        [{"id": 1, "filename": "logo.png", "content": b"\x89PNG\r\n\x1a\n1234"}],
    )
    await db_session.commit()
    return db_session


@pytest_asyncio.fixture(scope="function")
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Get test HTTP client."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def auth_headers() -> dict:
    """Authentication headers carrying an admin bearer token."""
    token = create_access_token({"sub": "admin@example.com", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(scope="function")
async def explorer(db_session, auth_headers) -> AsyncGenerator[TableExplorer, None]:
    """Table explorer talking to the app in-process."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    http_client = AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test/api/v1",
        headers=auth_headers,
    )
    async with TableExplorer(http_client) as table_explorer:
        yield table_explorer

    app.dependency_overrides.clear()
