"""Database engine and session management."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from bucketindex.config import Settings


def create_engine(
    settings: Settings,
) -> tuple[
    AsyncEngine,
    async_sessionmaker[AsyncSession],
]:
    """Create async engine and session factory.

    Returns (engine, session_factory) tuple.
    """
    engine = create_async_engine(
        settings.database_url,
        echo=settings.debug,
    )
    if engine.dialect.name == "sqlite":
        register_sqlite_functions(engine)
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return engine, session_factory


def _unicode_lower(value: object) -> object:
    return value.lower() if isinstance(value, str) else value


def register_sqlite_functions(engine: AsyncEngine) -> None:
    """Replace SQLite's ASCII-only ``lower()`` with Python's Unicode case folding.

    Search lower-cases the needle in Python, so the column side must fold the
    same way for ``ÉCOLE`` to match ``École``.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_functions(dbapi_conn, connection_record):  # type: ignore[no-untyped-def]
        dbapi_conn.create_function("lower", 1, _unicode_lower, deterministic=True)


async def get_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Yield an async database session."""
    async with session_factory() as session:
        yield session


async def ensure_tables(engine: AsyncEngine) -> None:
    """Create the index tables if they don't exist."""
    from bucketindex.models.base import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
