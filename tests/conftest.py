"""Shared test fixtures for the bucket index."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from bucketindex.config import Settings
from bucketindex.database import ensure_tables, register_sqlite_functions
from bucketindex.main import create_app
from bucketindex.services.index_store import IndexStore
from bucketindex.services.reconcile_service import ScanGate

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from bucketindex.storage.base import ObjectLister


@asynccontextmanager
async def create_test_client(
    settings: Settings, lister: ObjectLister
) -> AsyncGenerator[AsyncClient]:
    """Create an HTTP test client with a fully initialized app.

    Manually performs the work of the application lifespan because
    ASGITransport does not trigger it.
    """
    from bucketindex.database import create_engine as create_db_engine

    app = create_app(settings)
    engine, session_factory = create_db_engine(settings)
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.lister = lister
    app.state.scan_gate = ScanGate()
    await ensure_tables(engine)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    await engine.dispose()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings with a temporary database."""
    db_path = tmp_path / "test.db"
    return Settings(
        _env_file=None,
        debug=True,
        database_url=f"sqlite+aiosqlite:///{db_path}",
    )


@pytest.fixture
async def db_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine]:
    """Create a test database engine with the index tables."""
    engine = create_async_engine(
        test_settings.database_url,
        echo=False,
    )
    register_sqlite_functions(engine)
    await ensure_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session: AsyncSession) -> IndexStore:
    """Index store over a fresh, empty database."""
    return IndexStore(db_session)
