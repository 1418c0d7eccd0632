"""Reconciliation engine: full rebuild and delta refresh of the object index."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from bucketindex.exceptions import ScanInProgressError
from bucketindex.services.datetime_service import normalize_timestamp, now_utc
from bucketindex.services.index_store import EntryKind, EntryRecord
from bucketindex.services.key_service import (
    ancestor_folders,
    display_name,
    extension,
    is_folder_key,
)
from bucketindex.storage.base import clean_checksum, coerce_size

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from bucketindex.services.index_store import IndexStore
    from bucketindex.storage.base import ObjectDescriptor, ObjectLister

logger = logging.getLogger(__name__)

PROGRESS_LOG_INTERVAL = 2000


class ChangeDecision(StrEnum):
    """Outcome of comparing an observed object against its stored entry."""

    UNCHANGED = "unchanged"
    ADDED = "added"
    UPDATED = "updated"


@dataclass(frozen=True)
class RebuildResult:
    indexed: int
    folders: int


@dataclass(frozen=True)
class RefreshResult:
    added: int
    updated: int
    removed: int
    files: int
    folders: int


def folder_record(key: str, name: str) -> EntryRecord:
    """Canonical entry for a synthesized folder."""
    return EntryRecord(key=key, name=name, kind=EntryKind.FOLDER)


def record_for_object(obj: ObjectDescriptor) -> EntryRecord:
    """Build the entry for a listed object.

    Folder-marker keys (ending in ``/``) become folder entries so they never
    clash with the folder synthesized from their children.
    """
    if is_folder_key(obj.key):
        return folder_record(obj.key, display_name(obj.key))
    return EntryRecord(
        key=obj.key,
        name=display_name(obj.key),
        kind=EntryKind.FILE,
        extension=extension(obj.key),
        size=coerce_size(obj.size),
        last_modified=normalize_timestamp(obj.last_modified),
        checksum_tag=clean_checksum(obj.checksum_tag),
    )


def classify_change(existing: EntryRecord | None, incoming: EntryRecord) -> ChangeDecision:
    """Decide whether *incoming* must be written over the stored *existing* entry.

    Compares kind, size, modification time and checksum tag. Timestamps are
    normalized first so ``None``/``""`` and ``Z``/``+00:00`` compare equal.
    """
    if existing is None:
        return ChangeDecision.ADDED
    if (
        existing.kind != incoming.kind
        or existing.size != incoming.size
        or normalize_timestamp(existing.last_modified)
        != normalize_timestamp(incoming.last_modified)
        or clean_checksum(existing.checksum_tag) != clean_checksum(incoming.checksum_tag)
    ):
        return ChangeDecision.UPDATED
    return ChangeDecision.UNCHANGED


class ScanGate:
    """Allows one reconciliation run at a time against an index.

    A second request while a run is active is rejected, never queued.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._running: str | None = None

    @property
    def running(self) -> str | None:
        return self._running

    @asynccontextmanager
    async def hold(self, mode: str) -> AsyncGenerator[None]:
        if self._lock.locked():
            raise ScanInProgressError(self._running or "scan")
        async with self._lock:
            self._running = mode
            try:
                yield
            finally:
                self._running = None


async def _count_kinds(store: IndexStore) -> tuple[int, int]:
    files = await store.count_by_kind(EntryKind.FILE)
    folders = await store.count_by_kind(EntryKind.FOLDER)
    return files, folders


async def rebuild_index(
    store: IndexStore, lister: ObjectLister, *, prefix: str = ""
) -> RebuildResult:
    """Clear the index and repopulate it from a full listing of the store.

    Pages are committed as they are processed, so concurrent readers see the
    index fill up. If the listing fails the run aborts and the scan state is
    left untouched.
    """
    logger.info("Starting full rebuild of object index")
    await store.clear_all()
    await store.commit()

    seen_folders: set[str] = set()
    processed = 0
    try:
        async for page in lister.iter_pages(prefix):
            for obj in page:
                for folder_key, folder_name in ancestor_folders(obj.key):
                    if folder_key in seen_folders:
                        continue
                    await store.upsert(folder_record(folder_key, folder_name))
                    seen_folders.add(folder_key)

                record = record_for_object(obj)
                if record.kind == EntryKind.FOLDER:
                    if record.key in seen_folders:
                        continue
                    seen_folders.add(record.key)
                await store.upsert(record)

                processed += 1
                if processed % PROGRESS_LOG_INTERVAL == 0:
                    logger.info("Rebuild processed %d objects so far", processed)
            await store.commit()
    except Exception:
        await store.rollback()
        logger.error("Full rebuild aborted after %d objects", processed)
        raise

    now = now_utc()
    await store.set_scan_state(last_full_scan=now, last_delta_scan=now)
    await store.commit()

    files, folders = await _count_kinds(store)
    logger.info(
        "Full rebuild complete: processed %d objects, stored %d files and %d folders",
        processed,
        files,
        folders,
    )
    return RebuildResult(indexed=files, folders=folders)


async def refresh_index(
    store: IndexStore, lister: ObjectLister, *, prefix: str = ""
) -> RefreshResult:
    """Apply adds, updates and removals so the index matches the store.

    Unchanged entries are not written. Entries absent from the listing are
    deleted only after the listing completed; a failed listing deletes nothing.
    """
    logger.info("Starting delta refresh of object index")
    seen_keys: set[str] = set()
    seen_folders: set[str] = set()
    added = 0
    updated = 0
    processed = 0

    async def apply(record: EntryRecord) -> None:
        nonlocal added, updated
        decision = classify_change(await store.get(record.key), record)
        if decision is ChangeDecision.ADDED:
            added += 1
        elif decision is ChangeDecision.UPDATED:
            updated += 1
        if decision is not ChangeDecision.UNCHANGED:
            await store.upsert(record)
        seen_keys.add(record.key)

    try:
        async for page in lister.iter_pages(prefix):
            for obj in page:
                for folder_key, folder_name in ancestor_folders(obj.key):
                    if folder_key in seen_folders:
                        continue
                    await apply(folder_record(folder_key, folder_name))
                    seen_folders.add(folder_key)

                record = record_for_object(obj)
                if record.kind == EntryKind.FOLDER:
                    if record.key in seen_folders:
                        continue
                    seen_folders.add(record.key)
                await apply(record)

                processed += 1
                if processed % PROGRESS_LOG_INTERVAL == 0:
                    logger.info("Refresh processed %d objects so far", processed)
            await store.commit()
    except Exception:
        await store.rollback()
        logger.error(
            "Delta refresh aborted after %d objects; skipping removal of unseen entries",
            processed,
        )
        raise

    # TODO: stamp a per-run generation on touched rows and delete stale
    # generations instead of diffing every stored key in memory.
    stale = await store.all_keys() - seen_keys
    removed = await store.delete_many(stale)

    await store.set_scan_state(last_delta_scan=now_utc())
    await store.commit()

    files, folders = await _count_kinds(store)
    logger.info(
        "Delta refresh complete: added %d, updated %d, removed %d; now %d files and %d folders",
        added,
        updated,
        removed,
        files,
        folders,
    )
    return RefreshResult(
        added=added, updated=updated, removed=removed, files=files, folders=folders
    )
