"""Datetime parsing: lax input -> strict output."""

from __future__ import annotations

from datetime import datetime, timezone

import pendulum


def parse_datetime(value: str | datetime, default_tz: str = "UTC") -> datetime:
    """Parse a lax datetime string into a strict timezone-aware datetime.

    Accepts ISO 8601 variants with or without the ``T`` separator, fractional
    seconds, ``Z`` or numeric offsets. Missing timezone defaults to default_tz.
    Raises ``ValueError`` for unparseable input.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            tz = pendulum.timezone(default_tz)
            value = value.replace(tzinfo=tz)  # type: ignore[arg-type]
        return value

    parsed = pendulum.parse(value.strip(), tz=default_tz, strict=False)
    if not isinstance(parsed, pendulum.DateTime):
        # pendulum.parse returns Date for date-only strings
        parsed = pendulum.datetime(
            parsed.year, parsed.month, parsed.day, tz=default_tz  # type: ignore[union-attr]
        )
    return parsed  # type: ignore[return-value]


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def format_iso(dt: datetime) -> str:
    """Format datetime as ISO 8601 for JSON serialization."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def format_optional_iso(dt: datetime | None) -> str | None:
    """Format an optional datetime, keeping ``None`` as ``None``."""
    return format_iso(dt) if dt is not None else None


def normalize_timestamp(value: str | datetime | None) -> str | None:
    """Normalize a remote modification timestamp to a canonical UTC string.

    ``None`` and blank strings both normalize to ``None``. ``Z``, ``+00:00``
    and missing offsets all yield the same string, so stored and freshly
    listed values compare equal. Values that cannot be parsed are kept as
    their stripped text.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            dt = parse_datetime(value)
        except ValueError:
            return value
    else:
        dt = parse_datetime(value)
    utc = dt.astimezone(timezone.utc)
    return datetime(
        utc.year,
        utc.month,
        utc.day,
        utc.hour,
        utc.minute,
        utc.second,
        utc.microsecond,
        tzinfo=timezone.utc,
    ).isoformat()
