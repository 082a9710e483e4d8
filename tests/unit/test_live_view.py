"""Unit tests for the per-hall live view."""

import datetime

import pytest

from hallcoordinator.domain.contact_resolver import ContactResolver
from hallcoordinator.domain.live_view import (
    UPCOMING_LIMIT,
    MAX_OVERRUN_MINUTES,
    build_hall_view,
    compute_day_stats,
    find_overrunning_session,
    group_by_day,
    select_day,
    view_to_dict,
)
from hallcoordinator.domain.time_classifier import classify_session
from hallcoordinator.models import SessionTiming

pytestmark = pytest.mark.unit


class TestDaySelection:
    """Tests for grouping and day selection."""

    def test_group_by_day_when_two_days_then_sorted_keys(self, hall_sessions):
        groups = group_by_day(list(reversed(hall_sessions)))

        assert list(groups) == ["2026-03-10", "2026-03-11"]
        assert len(groups["2026-03-10"]) == 4

    def test_select_day_when_requested_known_then_requested(self):
        assert select_day(["2026-03-10", "2026-03-11"], datetime.date(2026, 3, 10), "2026-03-11") == "2026-03-11"

    def test_select_day_when_requested_unknown_then_today(self):
        assert select_day(["2026-03-10", "2026-03-11"], datetime.date(2026, 3, 11), "2027-01-01") == "2026-03-11"

    def test_select_day_when_today_absent_then_first_day(self):
        assert select_day(["2026-03-10", "2026-03-11"], datetime.date(2026, 2, 1)) == "2026-03-10"

    def test_select_day_when_no_days_then_none(self):
        assert select_day([], datetime.date(2026, 3, 10)) is None


class TestDayStats:
    """Tests for compute_day_stats."""

    def test_compute_day_stats_when_mixed_statuses_then_counts(self, session_factory):
        sessions = [
            session_factory(id="a", coordinator_status="completed"),
            session_factory(id="b", coordinator_status="in_progress"),
            session_factory(id="c", coordinator_status="delayed"),
        ]

        stats = compute_day_stats(sessions)

        assert (stats.total, stats.completed, stats.live, stats.delayed) == (3, 1, 1, 1)
        assert stats.pending == 2
        assert stats.progress == 33

    def test_compute_day_stats_when_empty_then_zero_progress(self):
        assert compute_day_stats([]).progress == 0


class TestBuildHallView:
    """Tests for build_hall_view over the Hall A agenda."""

    def test_build_hall_view_when_live_in_slot_then_no_delay(self, hall_sessions, local_time):
        view = build_hall_view(hall_sessions, local_time("10:15"))

        assert view.selected_day == "2026-03-10"
        assert view.live.session.id == "s2"
        assert view.live.timing == SessionTiming.CURRENT
        assert view.time_info.remaining == 15
        assert view.cascade_delay == 0
        assert view.next.session.id == "s3"
        assert view.next.timing == SessionTiming.UPCOMING
        assert not any(v.is_pushed for v in view.sessions)

    def test_build_hall_view_when_live_overruns_then_rest_pushed(self, hall_sessions, local_time):
        view = build_hall_view(hall_sessions, local_time("10:45"))

        assert view.live.session.id == "s2"
        assert view.live.is_pushed is False
        assert view.time_info.is_overtime is True
        assert view.cascade_delay == 15

        by_id = {v.session.id: v for v in view.sessions}
        assert by_id["s1"].is_pushed is False
        assert by_id["s3"].timing == SessionTiming.STARTING_SOON
        assert (by_id["s3"].adjusted_start, by_id["s3"].adjusted_end) == ("11:15 AM", "12:00 PM")
        assert (by_id["s4"].adjusted_start, by_id["s4"].adjusted_end) == ("12:15 PM", "12:45 PM")
        assert by_id["s3"].start_label == "11:00 AM"

        assert view.next.session.id == "s3"
        assert [v.session.id for v in view.upcoming] == ["s3", "s4"]

    def test_build_hall_view_when_overrunning_then_stats_for_selected_day(
        self, hall_sessions, local_time
    ):
        stats = build_hall_view(hall_sessions, local_time("10:45")).stats

        assert (stats.total, stats.completed, stats.live, stats.pending) == (4, 1, 1, 3)
        assert stats.progress == 25

    def test_build_hall_view_when_other_day_requested_then_nothing_live(
        self, hall_sessions, local_time
    ):
        view = build_hall_view(hall_sessions, local_time("10:45"), requested_day="2026-03-11")

        assert view.selected_day == "2026-03-11"
        assert [v.session.id for v in view.sessions] == ["s5"]
        assert view.live is None
        assert view.next is None
        assert view.sessions[0].timing == SessionTiming.FUTURE

    def test_build_hall_view_when_prep_window_then_starting_soon_is_live(
        self, session_factory, local_time
    ):
        sessions = [
            session_factory(id="a", start_time="11:00", end_time="11:30"),
            session_factory(id="b", start_time="12:00", end_time="12:30"),
        ]

        view = build_hall_view(sessions, local_time("10:40"))

        assert view.live.session.id == "a"
        assert view.live.timing == SessionTiming.STARTING_SOON
        assert view.next.session.id == "b"

    def test_build_hall_view_when_second_session_in_prep_window_then_it_is_next(
        self, session_factory, local_time
    ):
        sessions = [
            session_factory(id="a", start_time="10:00", end_time="10:30"),
            session_factory(id="b", start_time="10:45", end_time="11:15"),
            session_factory(id="c", start_time="12:00", end_time="12:30"),
        ]

        view = build_hall_view(sessions, local_time("10:20"))

        assert view.live.session.id == "a"
        assert view.next.session.id == "b"
        assert view.next.timing == SessionTiming.STARTING_SOON
        assert [v.session.id for v in view.upcoming] == ["b", "c"]

    def test_build_hall_view_when_many_sessions_then_upcoming_capped(
        self, session_factory, local_time
    ):
        sessions = [
            session_factory(id=f"u{h}", start_time=f"{h:02d}:00", end_time=f"{h:02d}:30")
            for h in range(12, 20)
        ]

        view = build_hall_view(sessions, local_time("08:00"))

        assert len(view.upcoming) == UPCOMING_LIMIT
        assert view.upcoming[0].session.id == "u12"

    def test_build_hall_view_when_no_sessions_then_empty(self, local_time):
        view = build_hall_view([], local_time("10:00"))

        assert view.days == ()
        assert view.selected_day is None
        assert view.live is None

    def test_build_hall_view_when_resolver_then_people_have_phones(
        self, hall_sessions, roster, local_time
    ):
        view = build_hall_view(hall_sessions, local_time("10:45"), resolver=ContactResolver(roster))

        keynote = view.next.people
        assert [(p.name, p.role, p.phone) for p in keynote] == [
            ("Meera Iyer", "Keynote Speaker", "9876500002")
        ]
        panel = {v.session.id: v for v in view.sessions}["s4"].people
        assert [(p.name, p.role) for p in panel] == [
            ("Anita Desai", "Moderator"),
            ("Prof. Sunil Mehta", "Chairperson"),
        ]
        assert panel[0].phone == "9876500003"
        assert panel[1].phone == "9000000001"

    def test_view_to_dict_when_overrunning_then_serializable_fields(
        self, hall_sessions, local_time
    ):
        data = view_to_dict(build_hall_view(hall_sessions, local_time("10:45")))

        assert data["live"]["id"] == "s2"
        assert data["live"]["status_label"] == "LIVE"
        assert data["live"]["suggested_next_status"] == "completed"
        assert data["live"]["checklist_completed"] == 2
        assert data["next"]["is_pushed"] is True
        assert data["next"]["adjusted_start"] == "11:15 AM"
        assert data["time_info"]["overtime_minutes"] == 15
        assert data["stats"]["progress"] == 25
        assert data["days"] == ["2026-03-10", "2026-03-11"]


class TestOverrunningSession:
    """Tests for when a session left in progress holds the live slot."""

    def test_build_hall_view_when_overrun_reaches_next_start_then_next_still_queued(
        self, hall_sessions, local_time
    ):
        view = build_hall_view(hall_sessions, local_time("11:05"))

        assert view.live.session.id == "s2"
        assert view.cascade_delay == 35
        assert view.next.session.id == "s3"
        assert view.next.timing == SessionTiming.CURRENT
        assert view.next.adjusted_start == "11:35 AM"
        assert [v.session.id for v in view.upcoming] == ["s3", "s4"]
        by_id = {v.session.id: v for v in view.sessions}
        assert by_id["s4"].adjusted_start == "12:35 PM"

    def test_build_hall_view_when_stale_status_and_later_session_running_then_later_live(
        self, session_factory, local_time
    ):
        sessions = [
            session_factory(id="a", start_time="09:00", end_time="09:30", coordinator_status="in_progress"),
            session_factory(id="b", start_time="14:30", end_time="15:30"),
            session_factory(id="c", start_time="16:00", end_time="17:00"),
        ]

        view = build_hall_view(sessions, local_time("15:00"))

        assert view.live.session.id == "b"
        assert view.cascade_delay == 0
        assert view.next.session.id == "c"
        assert not any(v.is_pushed for v in view.sessions)

    def test_build_hall_view_when_later_session_completed_then_overrun_ignored(
        self, session_factory, local_time
    ):
        sessions = [
            session_factory(id="a", start_time="10:00", end_time="10:30", coordinator_status="in_progress"),
            session_factory(id="b", start_time="10:30", end_time="10:40", coordinator_status="completed"),
            session_factory(id="c", start_time="11:00", end_time="11:30"),
        ]

        view = build_hall_view(sessions, local_time("10:45"))

        assert view.live.session.id == "c"
        assert view.cascade_delay == 0

    @pytest.mark.parametrize(
        ("clock", "expected"),
        [("12:30", "a"), ("12:31", None)],
    )
    def test_find_overrunning_session_when_at_cap_then_boundary_inclusive(
        self, session_factory, local_time, clock, expected
    ):
        sessions = [
            session_factory(id="a", start_time="10:00", end_time="10:30", coordinator_status="in_progress"),
        ]
        now = local_time(clock)
        classified = [(s, classify_session(s, now)) for s in sessions]

        overrun = find_overrunning_session(classified, now)

        assert MAX_OVERRUN_MINUTES == 120
        assert (overrun.id if overrun else None) == expected
