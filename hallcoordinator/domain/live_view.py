"""Live view of one hall's agenda.

Combines the time classifier, cascade delay and people parsing into the
snapshot the dashboard renders on every tick. Pure: the caller supplies the
session list, the local wall clock and (optionally) a contact resolver.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from ..models import CoordinatorStatus, PersonMention, Session, SessionTiming
from .contact_resolver import ContactResolver
from .delay_propagation import (
    TimeInfo,
    compute_cascade_delay,
    compute_time_info,
    format_adjusted_time,
    should_adjust,
)
from .status_machine import SUGGESTED_NEXT, status_label
from .text_parser import parse_session_people
from .time_classifier import classify_session, format_time

logger = logging.getLogger(__name__)

UPCOMING_LIMIT = 5
UNDATED_DAY = "unknown"

# Timings that can occupy the live slot
LIVE_TIMINGS = frozenset({SessionTiming.CURRENT, SessionTiming.STARTING_SOON})

# Timings listed as next/upcoming when not in the live slot
QUEUED_TIMINGS = frozenset({SessionTiming.STARTING_SOON, SessionTiming.UPCOMING})

# Statuses showing a session has started in its own right
STARTED_STATUSES = frozenset({CoordinatorStatus.IN_PROGRESS, CoordinatorStatus.COMPLETED})

MAX_OVERRUN_MINUTES = 120


@dataclass(frozen=True)
class DayStats:
    total: int = 0
    completed: int = 0
    live: int = 0
    delayed: int = 0
    pending: int = 0
    progress: int = 0


@dataclass(frozen=True)
class SessionView:
    """A session with its derived timing, display times and people."""

    session: Session
    timing: SessionTiming
    start_label: str
    end_label: str
    adjusted_start: Optional[str] = None
    adjusted_end: Optional[str] = None
    people: tuple[PersonMention, ...] = ()

    @property
    def is_pushed(self) -> bool:
        return self.adjusted_start is not None


@dataclass(frozen=True)
class HallView:
    now: datetime.datetime
    days: tuple[str, ...]
    selected_day: Optional[str]
    sessions: tuple[SessionView, ...] = ()
    live: Optional[SessionView] = None
    next: Optional[SessionView] = None
    upcoming: tuple[SessionView, ...] = ()
    time_info: Optional[TimeInfo] = None
    cascade_delay: int = 0
    stats: DayStats = field(default_factory=DayStats)


def day_key(session: Session) -> str:
    return session.session_date.isoformat() if session.session_date else UNDATED_DAY


def group_by_day(sessions: Sequence[Session]) -> dict[str, list[Session]]:
    """Group sessions by date, keys in ascending order; order within a day kept."""
    groups: dict[str, list[Session]] = {}
    for session in sessions:
        groups.setdefault(day_key(session), []).append(session)
    return {key: groups[key] for key in sorted(groups)}


def select_day(
    days: Sequence[str], today: datetime.date, requested: Optional[str] = None
) -> Optional[str]:
    """Requested day if known, else today if present, else the first day."""
    if not days:
        return None
    if requested and requested in days:
        return requested
    today_key = today.isoformat()
    if today_key in days:
        return today_key
    return days[0]


def compute_day_stats(sessions: Sequence[Session]) -> DayStats:
    total = len(sessions)
    statuses = [s.status for s in sessions]
    completed = statuses.count(CoordinatorStatus.COMPLETED)
    return DayStats(
        total=total,
        completed=completed,
        live=statuses.count(CoordinatorStatus.IN_PROGRESS),
        delayed=statuses.count(CoordinatorStatus.DELAYED),
        pending=total - completed,
        progress=round(completed / total * 100) if total else 0,
    )


def find_overrunning_session(
    classified: Sequence[tuple[Session, SessionTiming]], now: datetime.datetime
) -> Optional[Session]:
    """Find a session still marked in progress after its end time today.

    The overrun only holds the live slot while nothing after it has started
    and its overtime stays within ``MAX_OVERRUN_MINUTES``. Past that it reads
    as a status nobody cleared.
    """
    today = now.date()
    for index in range(len(classified) - 1, -1, -1):
        session, timing = classified[index]
        if not (
            timing == SessionTiming.PAST
            and session.session_date == today
            and session.status == CoordinatorStatus.IN_PROGRESS
        ):
            continue
        if any(later.status in STARTED_STATUSES for later, _ in classified[index + 1 :]):
            return None
        if compute_cascade_delay(session, now) > MAX_OVERRUN_MINUTES:
            logger.debug("Ignoring stale in-progress status on session %s", session.id)
            return None
        return session
    return None


def find_live_session(
    classified: Sequence[tuple[Session, SessionTiming]], now: datetime.datetime
) -> Optional[Session]:
    """Pick the session occupying the live slot.

    An overrunning session (see ``find_overrunning_session``) wins, so its
    overtime pushes the rest of the day. Otherwise the first session that is
    current or starting soon.
    """
    overrunning = find_overrunning_session(classified, now)
    if overrunning is not None:
        return overrunning
    for session, timing in classified:
        if timing in LIVE_TIMINGS:
            return session
    return None


def _session_view(
    session: Session,
    timing: SessionTiming,
    delay: int,
    pushed: bool,
    resolver: Optional[ContactResolver],
) -> SessionView:
    try:
        people = tuple(parse_session_people(session, resolver))
    except Exception:
        logger.exception("People parsing failed for session %s", session.id)
        people = ()
    return SessionView(
        session=session,
        timing=timing,
        start_label=format_time(session.start_time),
        end_label=format_time(session.end_time),
        adjusted_start=format_adjusted_time(session.start_time, delay) if pushed else None,
        adjusted_end=format_adjusted_time(session.end_time, delay) if pushed else None,
        people=people,
    )


def build_hall_view(
    sessions: Sequence[Session],
    now: datetime.datetime,
    requested_day: Optional[str] = None,
    resolver: Optional[ContactResolver] = None,
) -> HallView:
    """Build the live view for the selected day.

    Args:
        sessions: The hall's sessions ordered by date then start time
        now: Current local time in the event timezone
        requested_day: ``YYYY-MM-DD`` day to show; defaults to today or the first day
        resolver: Roster resolver used to fill missing phones

    Returns:
        HallView snapshot
    """
    today = now.date()
    groups = group_by_day(sessions)
    days = tuple(groups)
    selected = select_day(days, today, requested_day)
    day_sessions = groups.get(selected, []) if selected else []

    classified = [(s, classify_session(s, now, today)) for s in day_sessions]
    live = find_live_session(classified, now)
    time_info = compute_time_info(live, now) if live is not None else None
    delay = compute_cascade_delay(live, now)

    views: list[SessionView] = []
    live_view = next_view = None
    upcoming: list[SessionView] = []
    behind_overrun = False
    for session, timing in classified:
        pushed = session is not live and should_adjust(timing, delay, behind_overrun)
        view = _session_view(session, timing, delay, pushed, resolver)
        views.append(view)
        if session is live:
            live_view = view
            # Everything after an overrunning session is still waiting for it
            behind_overrun = delay > 0
        elif behind_overrun or timing in QUEUED_TIMINGS:
            next_view = next_view or view
            upcoming.append(view)

    if delay:
        logger.debug("Live session %s overrunning by %d min", live.id if live else None, delay)

    return HallView(
        now=now,
        days=days,
        selected_day=selected,
        sessions=tuple(views),
        live=live_view,
        next=next_view,
        upcoming=tuple(upcoming[:UPCOMING_LIMIT]),
        time_info=time_info,
        cascade_delay=delay,
        stats=compute_day_stats(day_sessions),
    )


def session_view_to_dict(view: SessionView) -> dict[str, Any]:
    """Serialize a SessionView to API response fields."""
    session = view.session
    suggested = SUGGESTED_NEXT[session.status]
    return {
        "id": session.id,
        "session_name": session.session_name,
        "session_type": session.session_type,
        "session_date": session.session_date.isoformat() if session.session_date else None,
        "start_time": session.start_time,
        "end_time": session.end_time,
        "start_label": view.start_label,
        "end_label": view.end_label,
        "adjusted_start": view.adjusted_start,
        "adjusted_end": view.adjusted_end,
        "is_pushed": view.is_pushed,
        "hall": session.hall,
        "specialty_track": session.specialty_track,
        "timing": view.timing.value,
        "coordinator_status": session.status.value,
        "status_label": status_label(session.status),
        "suggested_next_status": suggested.value if suggested else None,
        "checklist": session.checklist.as_map(),
        "checklist_completed": session.checklist.completed_count,
        "coordinator_notes": session.coordinator_notes or "",
        "audience_count": session.audience_count,
        "people": [m.model_dump() for m in view.people],
    }


def view_to_dict(view: HallView) -> dict[str, Any]:
    time_info = None
    if view.time_info is not None:
        time_info = {
            "remaining": view.time_info.remaining,
            "progress": view.time_info.progress,
            "is_overtime": view.time_info.is_overtime,
            "overtime_minutes": view.time_info.overtime_minutes,
        }
    return {
        "now_iso": view.now.isoformat(),
        "days": list(view.days),
        "selected_day": view.selected_day,
        "live": session_view_to_dict(view.live) if view.live else None,
        "next": session_view_to_dict(view.next) if view.next else None,
        "upcoming": [session_view_to_dict(v) for v in view.upcoming],
        "sessions": [session_view_to_dict(v) for v in view.sessions],
        "time_info": time_info,
        "cascade_delay": view.cascade_delay,
        "stats": {
            "total": view.stats.total,
            "completed": view.stats.completed,
            "live": view.stats.live,
            "delayed": view.stats.delayed,
            "pending": view.stats.pending,
            "progress": view.stats.progress,
        },
    }
