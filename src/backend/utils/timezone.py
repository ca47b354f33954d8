# src/backend/utils/timezone.py
from __future__ import annotations

import logging
from datetime import datetime

import pytz

from src.backend.config import settings

# -----------------------------------------------------------------------------
# Configure local timezone with fallback
# -----------------------------------------------------------------------------
try:
    LOCAL_TZ = pytz.timezone(settings.TIMEZONE)
except Exception as exc:
    logging.getLogger(__name__).warning(
        "Invalid TIMEZONE '%s' in environment; falling back to UTC. Error: %s",
        settings.TIMEZONE,
        exc
    )
    LOCAL_TZ = pytz.utc

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------
def now_local() -> datetime:
    """
    Return the current time as a timezone-aware datetime in the configured local timezone.
    """
    return datetime.now(LOCAL_TZ)


def now_iso() -> str:
    """
    Current local time as an ISO-8601 string, the form timestamps take
    inside stored documents. Example: '2025-10-04T13:40:15.120394-05:00'
    """
    return now_local().isoformat()


def parse_iso(value: object) -> datetime | None:
    """Parse a stored ISO timestamp; anything unparseable yields None."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt


def humanize_since(value: object, now: datetime | None = None) -> str:
    """
    Relative age of a timestamp for the live feed.
    Example: '2 minutes ago', 'just now'
    """
    dt = parse_iso(value)
    if dt is None:
        return ""
    now = now or now_local()
    seconds = int((now - dt).total_seconds())
    if seconds < 45:
        return "just now"
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            n = seconds // size
            return f"{n} {unit}{'' if n == 1 else 's'} ago"
    return "just now"


def format_date(value: object, fmt: str = "%b %d, %Y") -> str:
    """
    Calendar date of a stored timestamp.
    Example: 'Oct 04, 2025'
    """
    dt = parse_iso(value)
    return dt.astimezone(LOCAL_TZ).strftime(fmt) if dt else ""
