"""Builders and listing doubles shared by the index tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bucketindex.exceptions import ListingError
from bucketindex.storage.base import MemoryObjectLister, ObjectDescriptor

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable


def obj(
    key: str, size: int = 0, last_modified: str | None = None, etag: str | None = None
) -> ObjectDescriptor:
    """Shorthand for building an object descriptor."""
    return ObjectDescriptor(key=key, size=size, last_modified=last_modified, checksum_tag=etag)


def lister(*pages: list[ObjectDescriptor]) -> MemoryObjectLister:
    return MemoryObjectLister(pages)


class FailingLister(MemoryObjectLister):
    """Serves ``fail_after`` pages, then raises ``ListingError``."""

    def __init__(self, pages: Iterable[Iterable[ObjectDescriptor]], fail_after: int) -> None:
        super().__init__(pages)
        self.fail_after = fail_after
        self.served = 0

    async def iter_pages(self, prefix: str = "") -> AsyncIterator[list[ObjectDescriptor]]:
        async for page in super().iter_pages(prefix):
            if self.served == self.fail_after:
                break
            yield page
            self.served += 1
        raise ListingError(f"connection reset while fetching page {self.served + 1}")
