"""Datetime utilities for timezone-aware UTC timestamps.

Documents store timestamps as ISO-8601 strings so that lexical order equals
chronological order; these helpers are the only place that format them.
"""

from datetime import date, datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return to_iso(utc_now())


def to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string (date or datetime) into an aware datetime.

    Returns None for empty or unparseable values; legacy documents carry
    placeholders such as "Just now".
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def today_iso() -> str:
    return date.today().isoformat()
