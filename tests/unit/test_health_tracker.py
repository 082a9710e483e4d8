"""Unit tests for health_tracker module."""

import time

import pytest

from hallcoordinator.core.health_tracker import (
    STATUS_DEGRADED,
    STATUS_OFFLINE,
    STATUS_OK,
    HealthTracker,
)

pytestmark = pytest.mark.unit


class TestHealthTracker:
    """Tests for HealthTracker class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.tracker = HealthTracker(stale_after_seconds=60)

    def test_initial_state(self):
        """Should be degraded before the first successful fetch."""
        status = self.tracker.get_health_status("2026-03-10T05:15:00+00:00")

        assert status.status == STATUS_DEGRADED
        assert status.hall_count == 0
        assert status.last_fetch_success_age_seconds is None
        assert status.background_tasks[0]["status"] == "unknown"

    def test_record_fetch_success(self):
        """Should record counts and report ok."""
        self.tracker.record_fetch_attempt()
        self.tracker.record_fetch_success(hall_count=2, session_count=9)

        status = self.tracker.get_health_status("now")

        assert status.status == STATUS_OK
        assert (status.hall_count, status.session_count) == (2, 9)
        assert status.last_fetch_success_age_seconds < 5
        assert self.tracker.get_last_fetch_attempt_timestamp() is not None

    def test_record_fetch_failure_goes_offline_until_next_success(self):
        """A failed poll is offline; the next success clears it."""
        self.tracker.record_fetch_success(1, 4)
        self.tracker.record_fetch_failure()
        self.tracker.record_fetch_failure()

        assert self.tracker.determine_overall_status() == STATUS_OFFLINE
        assert self.tracker.is_online is False
        assert self.tracker.get_health_status("now").consecutive_fetch_failures == 2

        self.tracker.record_fetch_success(1, 4)

        assert self.tracker.determine_overall_status() == STATUS_OK
        assert self.tracker.is_online is True

    def test_stale_snapshot_is_degraded(self):
        """Should be degraded when the last success is older than the stale limit."""
        self.tracker.record_fetch_success(1, 4)
        self.tracker._last_fetch_success = time.time() - 120

        assert self.tracker.determine_overall_status() == STATUS_DEGRADED

    def test_failed_write_is_degraded_until_next_write(self):
        """A failed write degrades health; a successful write restores it."""
        self.tracker.record_fetch_success(1, 4)
        self.tracker.record_write_result(ok=False)

        assert self.tracker.determine_overall_status() == STATUS_DEGRADED

        self.tracker.record_write_result(ok=True)

        assert self.tracker.determine_overall_status() == STATUS_OK

    def test_background_heartbeat(self):
        """Should report the poller as running after a heartbeat."""
        self.tracker.record_background_heartbeat()

        task = self.tracker.get_background_task_status()

        assert task["name"] == "poller_task"
        assert task["status"] == "running"

    def test_background_heartbeat_stale(self):
        """Should report the poller as stale after a long silence."""
        self.tracker.record_background_heartbeat()
        self.tracker._background_task_heartbeat = time.time() - 600

        assert self.tracker.get_background_task_status()["status"] == "stale"
