"""Shared API dependencies: settings, DB session, index store, lister, scan gate."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bucketindex.config import Settings
from bucketindex.services.index_store import IndexStore
from bucketindex.services.reconcile_service import ScanGate
from bucketindex.storage.base import ObjectLister


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


async def get_session(request: Request) -> AsyncGenerator[AsyncSession]:
    """Get a database session."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


def get_index_store(session: Annotated[AsyncSession, Depends(get_session)]) -> IndexStore:
    """Get an index store bound to the request's session."""
    return IndexStore(session)


def get_lister(request: Request) -> ObjectLister:
    """Get the remote object lister from app state."""
    lister: ObjectLister = request.app.state.lister
    return lister


def get_scan_gate(request: Request) -> ScanGate:
    """Get the reconciliation gate for this index."""
    gate: ScanGate = request.app.state.scan_gate
    return gate
