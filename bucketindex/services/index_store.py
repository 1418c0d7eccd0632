"""Index store: all reads and writes of the object index tables."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from bucketindex.models.index import IndexEntry, ScanState
from bucketindex.services.datetime_service import now_utc

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.sql import ColumnElement, Select

logger = logging.getLogger(__name__)

SCAN_STATE_ID = 1

# SQLite caps bound parameters per statement; keep IN-lists well below it.
_DELETE_CHUNK_SIZE = 500

_UNSET: Any = object()


class EntryKind(StrEnum):
    """Kind of an index entry."""

    FILE = "file"
    FOLDER = "folder"


@dataclass(frozen=True)
class EntryRecord:
    """Fields of one index entry, as written or as currently stored."""

    key: str
    name: str
    kind: EntryKind = EntryKind.FILE
    extension: str | None = None
    size: int = 0
    last_modified: str | None = None
    checksum_tag: str | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ScanStateRecord:
    """Timestamps of the last completed reconciliation runs."""

    last_full_scan: datetime | None = None
    last_delta_scan: datetime | None = None


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo on storage; everything is written in UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


_ENTRY_COLUMNS = (
    IndexEntry.key,
    IndexEntry.name,
    IndexEntry.kind,
    IndexEntry.extension,
    IndexEntry.size,
    IndexEntry.last_modified,
    IndexEntry.checksum_tag,
    IndexEntry.updated_at,
)


def _row_to_record(row: Any) -> EntryRecord:
    return EntryRecord(
        key=row.key,
        name=row.name,
        kind=EntryKind.FOLDER if row.kind == EntryKind.FOLDER else EntryKind.FILE,
        extension=row.extension or None,
        size=max(int(row.size or 0), 0),
        last_modified=row.last_modified or None,
        checksum_tag=row.checksum_tag or None,
        updated_at=_as_utc(row.updated_at),
    )


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so *value* matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _needle_filter(needle: str) -> ColumnElement[bool]:
    pattern = f"%{escape_like(needle)}%"
    return or_(
        func.lower(IndexEntry.name).like(pattern, escape="\\"),
        func.lower(IndexEntry.key).like(pattern, escape="\\"),
        func.lower(IndexEntry.extension).like(pattern, escape="\\"),
    )


class IndexStore:
    """Persistent keyed table of index entries plus the scan-state row.

    Wraps one ``AsyncSession``. Writes are point statements keyed by the
    object key and become visible to other sessions on ``commit()``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ── Entries ──────────────────────────────────────

    async def upsert(self, record: EntryRecord) -> None:
        """Insert or overwrite the entry for ``record.key``, bumping ``updated_at``."""
        stmt = sqlite_insert(IndexEntry).values(
            key=record.key,
            name=record.name,
            extension=record.extension,
            size=record.size,
            last_modified=record.last_modified,
            checksum_tag=record.checksum_tag,
            kind=str(record.kind),
            updated_at=now_utc(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[IndexEntry.key],
            set_={
                "name": stmt.excluded.name,
                "extension": stmt.excluded.extension,
                "size": stmt.excluded.size,
                "last_modified": stmt.excluded.last_modified,
                "checksum_tag": stmt.excluded.checksum_tag,
                "kind": stmt.excluded.kind,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self._session.execute(stmt)

    async def get(self, key: str) -> EntryRecord | None:
        result = await self._session.execute(
            select(*_ENTRY_COLUMNS).where(IndexEntry.key == key)
        )
        row = result.first()
        return _row_to_record(row) if row is not None else None

    async def delete(self, key: str) -> None:
        await self._session.execute(delete(IndexEntry).where(IndexEntry.key == key))

    async def delete_many(self, keys: Iterable[str]) -> int:
        """Delete the given keys in chunks; returns how many keys were requested."""
        pending = sorted(keys)
        for start in range(0, len(pending), _DELETE_CHUNK_SIZE):
            chunk = pending[start : start + _DELETE_CHUNK_SIZE]
            await self._session.execute(delete(IndexEntry).where(IndexEntry.key.in_(chunk)))
        return len(pending)

    async def all_keys(self) -> set[str]:
        result = await self._session.scalars(select(IndexEntry.key))
        return set(result.all())

    async def count_by_kind(self, kind: EntryKind) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(IndexEntry).where(IndexEntry.kind == str(kind))
        )
        return result.scalar() or 0

    async def count_all(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(IndexEntry))
        return result.scalar() or 0

    async def clear_all(self) -> None:
        await self._session.execute(delete(IndexEntry))

    # ── Queries ──────────────────────────────────────

    def _filtered(self, stmt: Select[Any], needle: str | None) -> Select[Any]:
        if needle:
            stmt = stmt.where(_needle_filter(needle))
        return stmt

    async def list_entries(
        self, *, needle: str | None = None, limit: int, offset: int = 0
    ) -> list[EntryRecord]:
        """Entries matching *needle* (lower-case substring), most recently written first."""
        stmt = self._filtered(select(*_ENTRY_COLUMNS), needle)
        stmt = stmt.order_by(IndexEntry.updated_at.desc(), IndexEntry.key.asc())
        stmt = stmt.offset(offset).limit(limit)
        result = await self._session.execute(stmt)
        return [_row_to_record(row) for row in result.all()]

    async def count_entries(self, *, needle: str | None = None) -> int:
        stmt = self._filtered(select(func.count()).select_from(IndexEntry), needle)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    # ── Scan state ───────────────────────────────────

    async def get_scan_state(self) -> ScanStateRecord:
        result = await self._session.execute(
            select(ScanState.last_full_scan, ScanState.last_delta_scan).where(
                ScanState.id == SCAN_STATE_ID
            )
        )
        row = result.first()
        if row is None:
            return ScanStateRecord()
        return ScanStateRecord(
            last_full_scan=_as_utc(row.last_full_scan),
            last_delta_scan=_as_utc(row.last_delta_scan),
        )

    async def set_scan_state(
        self,
        *,
        last_full_scan: datetime | None = _UNSET,
        last_delta_scan: datetime | None = _UNSET,
    ) -> ScanStateRecord:
        """Merge the given fields into the scan-state row, creating it if needed."""
        current = await self.get_scan_state()
        merged = ScanStateRecord(
            last_full_scan=(
                current.last_full_scan if last_full_scan is _UNSET else last_full_scan
            ),
            last_delta_scan=(
                current.last_delta_scan if last_delta_scan is _UNSET else last_delta_scan
            ),
        )
        stmt = sqlite_insert(ScanState).values(
            id=SCAN_STATE_ID,
            last_full_scan=merged.last_full_scan,
            last_delta_scan=merged.last_delta_scan,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ScanState.id],
            set_={
                "last_full_scan": stmt.excluded.last_full_scan,
                "last_delta_scan": stmt.excluded.last_delta_scan,
            },
        )
        await self._session.execute(stmt)
        return merged

    # ── Transactions ─────────────────────────────────

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()
