"""CLI client for triggering and querying a bucket index server."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any
from urllib.parse import urlparse

import httpx

DEFAULT_SERVER = "http://localhost:8000"

# Rebuilds of large buckets can run for a long time.
RECONCILE_TIMEOUT = httpx.Timeout(10.0, read=None)


class IndexClient:
    """Thin HTTP client for the ``/api/index`` endpoints."""

    def __init__(self, server_url: str, client: httpx.Client | None = None) -> None:
        self.server_url = server_url.rstrip("/")
        self.client = client or httpx.Client(base_url=self.server_url, timeout=30.0)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> IndexClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def status(self) -> dict[str, Any]:
        resp = self.client.get("/api/index/status")
        resp.raise_for_status()
        return resp.json()

    def rebuild(self) -> dict[str, Any]:
        resp = self.client.post("/api/index/rebuild", timeout=RECONCILE_TIMEOUT)
        resp.raise_for_status()
        return resp.json()

    def refresh(self) -> dict[str, Any]:
        resp = self.client.post("/api/index/refresh", timeout=RECONCILE_TIMEOUT)
        resp.raise_for_status()
        return resp.json()

    def recent(self, limit: int = 20) -> list[dict[str, Any]]:
        resp = self.client.get("/api/index/recent", params={"limit": limit})
        resp.raise_for_status()
        return resp.json()

    def search(self, query: str | None, limit: int = 20, offset: int = 0) -> dict[str, Any]:
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if query:
            params["search"] = query
        resp = self.client.get("/api/index/objects", params=params)
        resp.raise_for_status()
        return resp.json()


def validate_server_url(server_url: str) -> str:
    """Require an absolute http(s) URL."""
    parsed = urlparse(server_url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        msg = f"Invalid server URL: {server_url!r}"
        raise ValueError(msg)
    return server_url.rstrip("/")


def _error_detail(exc: httpx.HTTPStatusError) -> str:
    try:
        detail = exc.response.json().get("detail")
    except ValueError:
        detail = None
    return str(detail) if detail else exc.response.text or str(exc)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Bucket index client",
    )
    parser.add_argument(
        "--server",
        default=DEFAULT_SERVER,
        help=f"Server URL (default: {DEFAULT_SERVER})",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("status", help="Show index size and last scan times")
    subparsers.add_parser("rebuild", help="Rebuild the index from scratch")
    subparsers.add_parser("refresh", help="Index only new or changed objects")
    recent_parser = subparsers.add_parser("recent", help="List recently changed entries")
    recent_parser.add_argument("--limit", type=int, default=20)
    search_parser = subparsers.add_parser("search", help="Search entries by name or extension")
    search_parser.add_argument("query", nargs="?", default=None)
    search_parser.add_argument("--limit", type=int, default=20)
    search_parser.add_argument("--offset", type=int, default=0)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    try:
        server_url = validate_server_url(args.server)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    with IndexClient(server_url) as client:
        try:
            if args.command == "status":
                result: Any = client.status()
            elif args.command == "rebuild":
                result = client.rebuild()
            elif args.command == "refresh":
                result = client.refresh()
            elif args.command == "recent":
                result = client.recent(args.limit)
            else:
                result = client.search(args.query, args.limit, args.offset)
        except httpx.HTTPStatusError as exc:
            print(
                f"Error: {exc.response.status_code} {_error_detail(exc)}",
                file=sys.stderr,
            )
            return 1
        except httpx.HTTPError as exc:
            print(f"Error: could not reach {server_url}: {exc}", file=sys.stderr)
            return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
