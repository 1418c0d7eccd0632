"""SQLAlchemy ORM models for the bucket index."""

from bucketindex.models.base import Base
from bucketindex.models.index import IndexEntry, ScanState

__all__ = [
    "Base",
    "IndexEntry",
    "ScanState",
]
