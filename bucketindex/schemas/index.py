"""Object index schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class IndexedObject(BaseModel):
    """One indexed file or folder."""

    key: str
    name: str
    extension: str | None = None
    size: int = Field(ge=0)
    last_modified: str | None = None
    updated_at: str | None = None
    kind: Literal["file", "folder"]


class IndexedObjectList(BaseModel):
    """Page of indexed objects with the unpaginated match count."""

    items: list[IndexedObject] = Field(default_factory=list)
    total: int


class IndexStatusResponse(BaseModel):
    """Size of the index and when it was last reconciled."""

    object_count: int
    last_full_scan: str | None = None
    last_delta_scan: str | None = None


class RebuildResponse(BaseModel):
    """Summary of a completed full rebuild."""

    indexed: int
    folders: int


class RefreshResponse(BaseModel):
    """Summary of a completed delta refresh."""

    added: int
    updated: int
    removed: int
    files: int
    folders: int
