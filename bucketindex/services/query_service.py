"""Query service: status, recent entries and search over the object index."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bucketindex.schemas.index import IndexedObject, IndexedObjectList, IndexStatusResponse
from bucketindex.services.datetime_service import format_optional_iso
from bucketindex.services.index_store import EntryKind

if TYPE_CHECKING:
    from bucketindex.services.index_store import EntryRecord, IndexStore

DEFAULT_LIMIT = 20
MAX_LIMIT = 200
# Largest offset SQLite accepts as a bound INTEGER.
MAX_OFFSET = 2**63 - 1


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return min(max(limit, 1), MAX_LIMIT)


def clamp_offset(offset: int | None) -> int:
    return min(max(offset or 0, 0), MAX_OFFSET)


def to_indexed_object(record: EntryRecord) -> IndexedObject:
    return IndexedObject(
        key=record.key,
        name=record.name,
        extension=record.extension,
        size=record.size,
        last_modified=record.last_modified,
        updated_at=format_optional_iso(record.updated_at),
        kind=str(record.kind),  # type: ignore[arg-type]
    )


async def get_index_status(store: IndexStore) -> IndexStatusResponse:
    """Number of indexed files and the last reconciliation timestamps."""
    state = await store.get_scan_state()
    return IndexStatusResponse(
        object_count=await store.count_by_kind(EntryKind.FILE),
        last_full_scan=format_optional_iso(state.last_full_scan),
        last_delta_scan=format_optional_iso(state.last_delta_scan),
    )


async def recent_indexed_objects(
    store: IndexStore, limit: int = DEFAULT_LIMIT
) -> list[IndexedObject]:
    """Most recently written entries, newest first."""
    records = await store.list_entries(limit=clamp_limit(limit))
    return [to_indexed_object(r) for r in records]


async def search_indexed_objects(
    store: IndexStore,
    *,
    search: str | None = None,
    limit: int | None = DEFAULT_LIMIT,
    offset: int | None = 0,
) -> IndexedObjectList:
    """Page through entries whose name, key or extension contains *search*.

    Matching is a case-insensitive substring test; an empty query matches
    everything. ``total`` counts all matches regardless of pagination.
    """
    needle = (search or "").strip().lower() or None
    records = await store.list_entries(
        needle=needle, limit=clamp_limit(limit), offset=clamp_offset(offset)
    )
    total = await store.count_entries(needle=needle)
    return IndexedObjectList(items=[to_indexed_object(r) for r in records], total=total)
