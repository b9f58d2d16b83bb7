"""Epoch-millisecond <-> ISO 8601 conversion for track timestamps.

Output matches what browsers emit for Date.toISOString():
``2024-11-02T06:15:00.000Z``.  Input accepts any ISO 8601 form
datetime.fromisoformat() understands, with or without a trailing Z;
naive timestamps are taken as UTC.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone


def now_ms() -> int:
    return int(time.time() * 1000)


def to_iso(ms: int) -> str:
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_date(ms: int) -> str:
    """YYYY-MM-DD (UTC) for the given epoch milliseconds."""
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def parse_iso(text: str | None) -> int | None:
    """Parse an ISO 8601 timestamp to epoch milliseconds, None if unparseable."""
    if not text:
        return None
    value = text.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return round(dt.timestamp() * 1000)
