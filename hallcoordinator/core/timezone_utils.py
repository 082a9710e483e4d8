"""Wall-clock access for the hall coordinator.

All "today" and "minutes since midnight" math happens in the event's local
timezone. The clock can be frozen for tests and rehearsals via
HALLCOORD_TEST_TIME.
"""

from __future__ import annotations

import datetime
import logging
import os
import zoneinfo
from functools import lru_cache

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

DEFAULT_EVENT_TIMEZONE = "Asia/Kolkata"


@lru_cache(maxsize=32)
def get_zone(tz_name: str | None) -> datetime.tzinfo:
    """Return a tzinfo for an IANA name, falling back to the default zone."""
    name = tz_name or DEFAULT_EVENT_TIMEZONE
    try:
        return zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; using %s", name, DEFAULT_EVENT_TIMEZONE)
        return zoneinfo.ZoneInfo(DEFAULT_EVENT_TIMEZONE)


def get_event_timezone() -> str:
    """Event timezone from HALLCOORD_TIMEZONE, or the default."""
    return os.environ.get("HALLCOORD_TIMEZONE") or DEFAULT_EVENT_TIMEZONE


def now_utc() -> datetime.datetime:
    """Return current UTC time with tzinfo.

    Can be overridden for testing via HALLCOORD_TEST_TIME environment variable.
    Format: ISO 8601 datetime string (e.g., "2026-10-19T10:45:00+05:30").
    Naive values are interpreted in the event timezone.
    """
    test_time = os.environ.get("HALLCOORD_TEST_TIME")
    if test_time:
        try:
            dt = date_parser.isoparse(test_time)
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=get_zone(get_event_timezone()))
            return dt.astimezone(datetime.UTC)
        except (ValueError, OverflowError) as e:
            logger.warning("Failed to parse HALLCOORD_TEST_TIME=%r: %s", test_time, e)

    return datetime.datetime.now(datetime.UTC)


def now_local(tz_name: str | None = None) -> datetime.datetime:
    """Current time in the event timezone."""
    return now_utc().astimezone(get_zone(tz_name or get_event_timezone()))


def minutes_since_midnight(moment: datetime.datetime) -> int:
    """Whole minutes elapsed since local midnight; seconds are dropped."""
    return moment.hour * 60 + moment.minute
