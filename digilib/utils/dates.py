"""Timestamp helpers.

Rows store naive UTC datetimes (SQLite drops tzinfo); everything entering
the data layer goes through `to_naive_utc` so comparisons stay consistent.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (``Z`` suffix accepted) into naive UTC.

    ``None`` and empty strings map to ``None``; datetimes pass through.
    Raises ValueError for anything unparseable.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return to_naive_utc(raw)
    if not isinstance(raw, str):
        raise ValueError("invalid_timestamp")
    candidate = raw.strip()
    if not candidate:
        return None
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("invalid_timestamp") from exc
    return to_naive_utc(parsed)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


__all__ = ["utcnow", "to_naive_utc", "parse_timestamp", "isoformat"]
