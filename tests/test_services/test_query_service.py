"""Tests for index status, recent listing and search."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bucketindex.services.query_service import (
    MAX_LIMIT,
    MAX_OFFSET,
    clamp_limit,
    clamp_offset,
    get_index_status,
    recent_indexed_objects,
    search_indexed_objects,
)
from bucketindex.services.reconcile_service import rebuild_index, refresh_index
from tests.helpers import lister, obj

if TYPE_CHECKING:
    from bucketindex.services.index_store import IndexStore


class TestClamping:
    def test_limit_bounds(self) -> None:
        assert clamp_limit(10_000) == MAX_LIMIT == 200
        assert clamp_limit(0) == 1
        assert clamp_limit(-3) == 1
        assert clamp_limit(None) == 20

    def test_offset_bounds(self) -> None:
        assert clamp_offset(-1) == 0
        assert clamp_offset(None) == 0
        assert clamp_offset(7) == 7
        assert clamp_offset(2**80) == MAX_OFFSET


class TestStatus:
    async def test_empty_index(self, store: IndexStore) -> None:
        status = await get_index_status(store)
        assert status.object_count == 0
        assert status.last_full_scan is None
        assert status.last_delta_scan is None

    async def test_counts_files_only(self, store: IndexStore) -> None:
        await rebuild_index(store, lister([obj("a/b/c.txt", 1), obj("a/d.txt", 1)]))
        status = await get_index_status(store)
        assert status.object_count == 2
        assert status.last_full_scan is not None
        assert status.last_full_scan == status.last_delta_scan


class TestSearch:
    async def test_substring_and_extension_match(self, store: IndexStore) -> None:
        await rebuild_index(
            store, lister([obj("reports/q1.csv", 10), obj("reports/q1-notes.md", 5)])
        )

        both = await search_indexed_objects(store, search="q1", limit=10, offset=0)
        assert both.total == 2
        assert {item.key for item in both.items} == {"reports/q1.csv", "reports/q1-notes.md"}

        csv = await search_indexed_objects(store, search="csv")
        assert csv.total == 1
        assert [item.key for item in csv.items] == ["reports/q1.csv"]

    async def test_case_insensitive(self, store: IndexStore) -> None:
        await rebuild_index(store, lister([obj("Photos/Beach.JPG", 1)]))
        result = await search_indexed_objects(store, search="  BEACH ")
        assert [item.key for item in result.items] == ["Photos/Beach.JPG"]

    async def test_case_insensitive_beyond_ascii(self, store: IndexStore) -> None:
        await rebuild_index(store, lister([obj("docs/École.pdf", 1)]))
        result = await search_indexed_objects(store, search="ÉCOLE")
        assert result.total == 1
        assert [item.key for item in result.items] == ["docs/École.pdf"]

    async def test_huge_offset_returns_empty_page(self, store: IndexStore) -> None:
        await rebuild_index(store, lister([obj("a.txt", 1)]))
        result = await search_indexed_objects(store, offset=2**63)
        assert result.items == []
        assert result.total == 1

    async def test_empty_query_lists_everything_with_total(self, store: IndexStore) -> None:
        await rebuild_index(store, lister([obj(f"f/{i}.txt", i) for i in range(5)]))
        page = await search_indexed_objects(store, search="", limit=2, offset=1)
        assert page.total == 6
        assert len(page.items) == 2

    async def test_pagination_is_disjoint(self, store: IndexStore) -> None:
        await rebuild_index(store, lister([obj(f"{i:02d}.txt", 1) for i in range(7)]))
        first = await search_indexed_objects(store, limit=4, offset=0)
        second = await search_indexed_objects(store, limit=4, offset=4)
        keys = [i.key for i in first.items] + [i.key for i in second.items]
        assert len(keys) == len(set(keys)) == 7

    async def test_limit_is_clamped(self, store: IndexStore) -> None:
        await rebuild_index(store, lister([obj(f"{i:03d}.bin", 1) for i in range(205)]))
        result = await search_indexed_objects(store, limit=10_000, offset=-5)
        assert len(result.items) == 200
        assert result.total == 205

    async def test_records_surface_nulls_and_sizes(self, store: IndexStore) -> None:
        await rebuild_index(store, lister([obj("d/a", 3)]))
        result = await search_indexed_objects(store)
        by_key = {item.key: item for item in result.items}
        folder = by_key["d/"]
        assert folder.kind == "folder"
        assert folder.size == 0
        assert folder.extension is None
        assert folder.last_modified is None
        file = by_key["d/a"]
        assert file.kind == "file"
        assert file.size == 3
        assert file.updated_at is not None
        dumped = file.model_dump()
        assert "last_modified" in dumped and dumped["last_modified"] is None


class TestRecent:
    async def test_most_recent_first(self, store: IndexStore) -> None:
        await rebuild_index(store, lister([obj("a.txt", 1), obj("b.txt", 1)]))
        await refresh_index(store, lister([obj("a.txt", 2), obj("b.txt", 1)]))

        recent = await recent_indexed_objects(store, limit=1)

        assert [item.key for item in recent] == ["a.txt"]

    async def test_defaults_to_twenty(self, store: IndexStore) -> None:
        await rebuild_index(store, lister([obj(f"{i:02d}.txt", 1) for i in range(25)]))
        assert len(await recent_indexed_objects(store)) == 20
