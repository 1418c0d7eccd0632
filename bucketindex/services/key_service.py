"""Object key decomposition: names, extensions and synthetic folders."""

from __future__ import annotations

SEPARATOR = "/"


def extension(key: str) -> str | None:
    """Return the lower-cased extension of the key's final segment, if any.

    A dot inside a folder segment does not count: ``a.b/noext`` has none.
    """
    last_dot = key.rfind(".")
    if last_dot == -1 or last_dot < key.rfind(SEPARATOR):
        return None
    suffix = key[last_dot + 1 :].lower()
    return suffix or None


def display_name(key: str) -> str:
    """Return the last non-empty path segment, or the key itself."""
    segments = [segment for segment in key.split(SEPARATOR) if segment]
    return segments[-1] if segments else key


def ancestor_folders(key: str) -> list[tuple[str, str]]:
    """Return ``(folder_key, folder_name)`` for every proper ancestor of *key*.

    Ordered shallowest first; each folder key ends with the separator.
    Empty segments are skipped, so ``a//b.txt`` yields only ``a/``.
    """
    segments = [segment for segment in key.split(SEPARATOR) if segment]
    folders: list[tuple[str, str]] = []
    prefix = ""
    for name in segments[:-1]:
        prefix += name + SEPARATOR
        folders.append((prefix, name))
    return folders


def is_folder_key(key: str) -> bool:
    """Whether *key* names a folder (a zero-byte marker object ending in ``/``)."""
    return key.endswith(SEPARATOR)
