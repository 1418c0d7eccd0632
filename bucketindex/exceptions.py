"""Application-level exception types.

Convention:
- ``ListingError``: the remote object listing failed (network, auth, timeout).
  A reconciliation run that hits it aborts before its deletion sweep.
- ``ScanInProgressError``: a reconciliation run was requested while another
  one holds the index.
- ``ValueError``: for validation errors that are safe to forward to clients.
"""

from __future__ import annotations


class ListingError(Exception):
    """Raised when the remote object store cannot be enumerated."""


class ScanInProgressError(Exception):
    """Raised when a rebuild or refresh is requested while one is running."""

    def __init__(self, running: str) -> None:
        super().__init__(f"Index {running} is already running")
        self.running = running
