"""Object index API endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from bucketindex.api.deps import get_index_store, get_lister, get_scan_gate, get_settings
from bucketindex.config import Settings
from bucketindex.schemas.index import (
    IndexedObject,
    IndexedObjectList,
    IndexStatusResponse,
    RebuildResponse,
    RefreshResponse,
)
from bucketindex.services.index_store import IndexStore
from bucketindex.services.query_service import (
    DEFAULT_LIMIT,
    get_index_status,
    recent_indexed_objects,
    search_indexed_objects,
)
from bucketindex.services.reconcile_service import ScanGate, rebuild_index, refresh_index
from bucketindex.storage.base import ObjectLister

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/index", tags=["index"])


@router.get("/status", response_model=IndexStatusResponse)
async def index_status(
    store: Annotated[IndexStore, Depends(get_index_store)],
) -> IndexStatusResponse:
    """Number of indexed files and last scan times."""
    return await get_index_status(store)


@router.post("/rebuild", response_model=RebuildResponse)
async def rebuild(
    store: Annotated[IndexStore, Depends(get_index_store)],
    lister: Annotated[ObjectLister, Depends(get_lister)],
    gate: Annotated[ScanGate, Depends(get_scan_gate)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RebuildResponse:
    """Discard the index and rebuild it from a full bucket listing."""
    logger.info("Index rebuild requested")
    async with gate.hold("rebuild"):
        result = await rebuild_index(store, lister, prefix=settings.s3_prefix)
    return RebuildResponse(indexed=result.indexed, folders=result.folders)


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(
    store: Annotated[IndexStore, Depends(get_index_store)],
    lister: Annotated[ObjectLister, Depends(get_lister)],
    gate: Annotated[ScanGate, Depends(get_scan_gate)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RefreshResponse:
    """Index new or changed objects and drop removed ones."""
    logger.info("Index refresh requested")
    async with gate.hold("refresh"):
        result = await refresh_index(store, lister, prefix=settings.s3_prefix)
    return RefreshResponse(
        added=result.added,
        updated=result.updated,
        removed=result.removed,
        files=result.files,
        folders=result.folders,
    )


@router.get("/recent", response_model=list[IndexedObject])
async def recent(
    store: Annotated[IndexStore, Depends(get_index_store)],
    limit: Annotated[int, Query()] = DEFAULT_LIMIT,
) -> list[IndexedObject]:
    """Most recently changed index entries."""
    return await recent_indexed_objects(store, limit)


@router.get("/objects", response_model=IndexedObjectList)
async def search(
    store: Annotated[IndexStore, Depends(get_index_store)],
    search: Annotated[str | None, Query(max_length=500)] = None,
    limit: Annotated[int, Query()] = DEFAULT_LIMIT,
    offset: Annotated[int, Query()] = 0,
) -> IndexedObjectList:
    """Search index entries by name, key or extension."""
    return await search_indexed_objects(store, search=search, limit=limit, offset=offset)
