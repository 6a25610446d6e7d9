"""
Timestamp helpers.

Stored timestamps are ISO-8601 UTC strings with millisecond precision and a trailing `Z`
(e.g. `2024-01-02T00:00:00.000Z`), which sort lexicographically in time order. Parsing
always yields timezone-aware datetimes so mixed inputs compare safely.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Format `dt` as an ISO-8601 UTC string with milliseconds and a `Z` suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def utc_now_iso() -> str:
    return to_iso(utc_now())


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 timestamp; returns None for missing or unparseable values.

    Notes:
    - Accepts a trailing `Z` (UTC) and converts it to `+00:00` for `fromisoformat`.
    - Naive values are treated as UTC.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
