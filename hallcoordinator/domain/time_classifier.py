"""Session timing classification and time-of-day helpers.

This module is the single source of truth for deciding whether a session is
past, live, about to start, or later in the day. Everything here is pure: the
caller passes the wall clock in.
"""

from __future__ import annotations

import datetime
import logging
from typing import Optional

from ..models import Session, SessionTiming

logger = logging.getLogger(__name__)

# Sessions inside this window before their start are "starting soon"
PREP_WINDOW_MINUTES = 30

MINUTES_PER_DAY = 24 * 60


def parse_time(value: Optional[str]) -> int:
    """Convert ``HH:MM`` or ``HH:MM:SS`` into minutes since midnight.

    Missing or unparseable values count as midnight (0), mirroring how the
    store leaves times blank for unscheduled sessions.
    """
    if not value:
        return 0
    parts = value.strip().split(":")
    try:
        hours = int(parts[0])
        minutes = int(parts[1]) if len(parts) > 1 and parts[1] else 0
    except ValueError:
        logger.debug("Unparseable time-of-day %r", value)
        return 0
    return hours * 60 + minutes


def format_minutes(total_minutes: int) -> str:
    """Render minutes since midnight as 12-hour ``h:MM AM``; wraps past midnight."""
    total_minutes %= MINUTES_PER_DAY
    hours, minutes = divmod(total_minutes, 60)
    suffix = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12}:{minutes:02d} {suffix}"


def format_time(value: Optional[str]) -> str:
    """Render a stored time-of-day for display, ``--:--`` when missing."""
    if not value:
        return "--:--"
    return format_minutes(parse_time(value))


def classify_session(
    session: Session,
    now: datetime.datetime,
    today: Optional[datetime.date] = None,
) -> SessionTiming:
    """Classify a session relative to the wall clock.

    Args:
        session: Session to classify
        now: Current local time (event timezone)
        today: Override for the current date, defaults to ``now.date()``

    Returns:
        SessionTiming for the session
    """
    current_day = today or now.date()
    if session.session_date != current_day:
        # Undated sessions never become live
        if session.session_date is not None and session.session_date < current_day:
            return SessionTiming.PAST
        return SessionTiming.FUTURE

    now_minutes = now.hour * 60 + now.minute
    return classify_minutes(parse_time(session.start_time), parse_time(session.end_time), now_minutes)


def classify_minutes(start: int, end: int, now_minutes: int) -> SessionTiming:
    """Classify a same-day session from minute offsets."""
    if now_minutes < start - PREP_WINDOW_MINUTES:
        return SessionTiming.UPCOMING
    if now_minutes < start:
        return SessionTiming.STARTING_SOON
    if now_minutes <= end:
        return SessionTiming.CURRENT
    return SessionTiming.PAST
