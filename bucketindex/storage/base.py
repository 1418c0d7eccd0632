"""Read-only listing abstraction over a prefix-addressed object store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable


def normalize_prefix(prefix: str) -> str:
    """Return *prefix* with a trailing separator, or ``""`` for the root."""
    if not prefix:
        return ""
    return prefix if prefix.endswith("/") else f"{prefix}/"


def coerce_size(value: Any) -> int:
    """Coerce a reported object size to a non-negative int, defaulting to 0."""
    try:
        size = int(value)
    except (TypeError, ValueError):
        return 0
    return max(size, 0)


def clean_checksum(value: str | None) -> str | None:
    """Strip surrounding quotes from an ETag; blank tags become ``None``."""
    if value is None:
        return None
    cleaned = value.strip().strip('"')
    return cleaned or None


@dataclass(frozen=True)
class ObjectDescriptor:
    """Metadata for one remote object as reported by a listing page."""

    key: str
    size: int = 0
    last_modified: str | None = None
    checksum_tag: str | None = None


class ObjectLister(ABC):
    """Paginated enumeration of the objects stored under a prefix."""

    @abstractmethod
    def iter_pages(self, prefix: str = "") -> AsyncIterator[list[ObjectDescriptor]]:
        """Yield pages of descriptors in listing order.

        Iteration ends when the store reports no continuation cursor.
        Transport and auth failures raise ``ListingError``.
        """


class MemoryObjectLister(ObjectLister):
    """Serves pre-built pages from memory.

    Used when no bucket is configured (debug runs) and as a test double.
    """

    def __init__(self, pages: Iterable[Iterable[ObjectDescriptor]] = ()) -> None:
        self._pages = [list(page) for page in pages]

    async def iter_pages(self, prefix: str = "") -> AsyncIterator[list[ObjectDescriptor]]:
        normalized = normalize_prefix(prefix)
        for page in self._pages:
            yield [
                obj
                for obj in page
                if obj.key.startswith(normalized) and obj.key != normalized
            ]
