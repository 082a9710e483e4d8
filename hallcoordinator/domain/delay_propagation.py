"""Cascade delay computation for the remaining agenda of a day.

When the live session runs past its end time, every session still ahead of it
is shown pushed by the same number of minutes. The delay is a live projection
and is never written back to the store.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Optional

from ..models import Session, SessionTiming
from .time_classifier import MINUTES_PER_DAY, format_minutes, format_time, parse_time

# Timings whose displayed start/end are pushed by the cascade delay
ADJUSTABLE_TIMINGS = frozenset({SessionTiming.UPCOMING, SessionTiming.STARTING_SOON})


@dataclass(frozen=True)
class TimeInfo:
    """Progress of the live session."""

    remaining: int
    progress: float
    is_overtime: bool
    overtime_minutes: int


def compute_time_info(session: Session, now: datetime.datetime) -> TimeInfo:
    """Compute remaining minutes and progress for a session.

    End times earlier than start times are not corrected; the numbers come out
    as whatever the arithmetic gives.
    """
    now_minutes = now.hour * 60 + now.minute
    start = parse_time(session.start_time)
    end = parse_time(session.end_time)
    remaining = end - now_minutes

    duration = end - start
    if duration > 0:
        progress = min(100.0, max(0.0, (now_minutes - start) / duration * 100))
    else:
        progress = 100.0 if now_minutes >= end else 0.0

    is_overtime = remaining < 0
    return TimeInfo(
        remaining=remaining,
        progress=progress,
        is_overtime=is_overtime,
        overtime_minutes=abs(remaining) if is_overtime else 0,
    )


def compute_cascade_delay(live_session: Optional[Session], now: datetime.datetime) -> int:
    """Minutes the rest of the day is pushed by the live session's overtime.

    Returns 0 when there is no live session or it is still within its slot.
    """
    if live_session is None:
        return 0
    return compute_time_info(live_session, now).overtime_minutes


def shift_time(original: Optional[str], delay: int) -> Optional[str]:
    """Shift a ``HH:MM`` time by ``delay`` minutes, wrapping hours modulo 24."""
    if not original:
        return original
    total = (parse_time(original) + delay) % MINUTES_PER_DAY
    hours, minutes = divmod(total, 60)
    return f"{hours:02d}:{minutes:02d}"


def format_adjusted_time(original: Optional[str], delay: int) -> str:
    """Display form of a time pushed by ``delay`` minutes.

    ``format_adjusted_time(t, 0) == format_time(t)`` for every ``t``.
    """
    if not original or delay == 0:
        return format_time(original)
    return format_minutes(parse_time(original) + delay)


def should_adjust(timing: SessionTiming, delay: int, behind_overrun: bool = False) -> bool:
    """Whether a session with this timing shows pushed times.

    Sessions queued behind an overrunning live session are pushed whatever
    their own timing, since none of them has started yet.
    """
    if delay <= 0:
        return False
    return behind_overrun or timing in ADJUSTABLE_TIMINGS
