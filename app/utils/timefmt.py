# app/utils/timefmt.py
"""Renders stored UTC timestamps at the fixed display offset used by the fleet dashboards."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from app.config import settings

DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


def to_display_time(value: Optional[datetime], offset_hours: Optional[int] = None) -> Optional[str]:
    """
    Convert a UTC timestamp to 'YYYY-MM-DD HH:MM:SS' at a fixed offset.
    Naive values are assumed to be UTC (that is how the store writes them).
    """
    if value is None:
        return None
    hours = settings.DISPLAY_UTC_OFFSET_HOURS if offset_hours is None else offset_hours
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone(timedelta(hours=hours))).strftime(DISPLAY_FORMAT)
