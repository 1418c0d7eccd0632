"""Object index models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bucketindex.models.base import Base


class IndexEntry(Base):
    """Indexed file or folder (regenerated from the object store)."""

    __tablename__ = "object_index"

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    extension: Mapped[str | None] = mapped_column(Text, nullable=True)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_modified: Mapped[str | None] = mapped_column(Text, nullable=True)
    checksum_tag: Mapped[str | None] = mapped_column(Text, nullable=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False, default="file")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("kind IN ('file', 'folder')", name="ck_object_index_kind"),
        Index("idx_object_index_name", "name"),
        Index("idx_object_index_extension", "extension"),
        Index("idx_object_index_updated_at", "updated_at"),
    )


class ScanState(Base):
    """Singleton row recording when the index was last reconciled."""

    __tablename__ = "index_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_full_scan: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_delta_scan: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (CheckConstraint("id = 1", name="ck_index_state_singleton"),)
