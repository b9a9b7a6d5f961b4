"""
Calendar-day keys.

A day key is an ISO `YYYY-MM-DD` string for the *local* calendar day, not the
UTC one: a log written at 23:30 local time belongs to that local day even when
UTC has already rolled over. Keys compare lexicographically in date order.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def _resolve_zone(name: str):
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown TIMEZONE %r, using process local zone", name)
        return None


def _local_zone():
    if not settings.TIMEZONE:
        return None
    return _resolve_zone(settings.TIMEZONE)


def today_key(now: Optional[datetime] = None) -> str:
    """Return today's local day key."""
    zone = _local_zone()
    if now is None:
        now = datetime.now(tz=zone) if zone else datetime.now().astimezone()
    elif now.tzinfo is not None:
        now = now.astimezone(zone) if zone else now.astimezone()
    return now.date().isoformat()


def parse_day_key(value) -> Optional[date]:
    """Strict YYYY-MM-DD parse. Returns None instead of raising."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str) or len(value) != 10:
        return None
    try:
        parsed = date.fromisoformat(value)
    except ValueError:
        return None
    # Python 3.11+ also accepts week dates like "2024-W01-1"
    return parsed if parsed.isoformat() == value else None


def is_day_key(value) -> bool:
    return isinstance(value, str) and parse_day_key(value) is not None


def days_between(earlier, later) -> Optional[int]:
    """Whole days from `earlier` to `later`, or None when either is unparseable."""
    start = parse_day_key(earlier)
    end = parse_day_key(later)
    if start is None or end is None:
        return None
    return (end - start).days


def days_active(start_date, today: Optional[str] = None) -> int:
    """
    1-indexed day count: the start date itself is day 1.
    Never below 1; 1 when either key fails to parse.
    """
    diff = days_between(start_date, today if today is not None else today_key())
    if diff is None:
        return 1
    return max(diff + 1, 1)
