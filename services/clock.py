# services/clock.py
"""
Canonical application time zone.

"Today" for stats windows, future-date checks on entries and the reminder
matcher's wall clock are all evaluated in one zone, configured via
APP_TIMEZONE (default Africa/Johannesburg).
"""
import os
import logging
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger("frogsy-api.clock")

DEFAULT_APP_TIMEZONE = "Africa/Johannesburg"


def get_app_timezone() -> ZoneInfo:
    """
    Resolve APP_TIMEZONE to a ZoneInfo.

    An unknown zone name is logged and replaced by the default rather than
    failing the request or the reminder tick.
    """
    name = os.getenv("APP_TIMEZONE", DEFAULT_APP_TIMEZONE).strip() or DEFAULT_APP_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.error("Unknown APP_TIMEZONE=%r, falling back to %s", name, DEFAULT_APP_TIMEZONE)
        return ZoneInfo(DEFAULT_APP_TIMEZONE)


def now_in_app_timezone(now: Optional[datetime] = None) -> datetime:
    """Current (or given) instant expressed in the app time zone."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(get_app_timezone())


def today_in_app_timezone(now: Optional[datetime] = None) -> date:
    return now_in_app_timezone(now).date()


def local_calendar_day(value: datetime) -> date:
    """
    Calendar day of a timestamp as the user saw it.

    Aware timestamps (Supabase returns timestamptz with an offset) are
    converted to the app zone first; naive ones are taken at face value.
    """
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(get_app_timezone()).date()
