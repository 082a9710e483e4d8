"""Health tracking for the hall coordinator server.

Fetch failures flip the indicator to "offline" until the next successful poll;
the dashboard keeps serving its previous snapshot meanwhile.
"""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

STATUS_OK = "ok"
STATUS_DEGRADED = "degraded"
STATUS_OFFLINE = "offline"

# Snapshot considered stale after this long without a successful fetch
DEFAULT_STALE_AFTER_SECONDS = 120


@dataclass
class HealthStatus:
    """Health status information for the server."""

    status: str  # "ok", "degraded" or "offline"
    server_time_iso: str
    uptime_seconds: int
    pid: int
    hall_count: int
    session_count: int
    last_fetch_success_age_seconds: Optional[int]
    consecutive_fetch_failures: int
    last_write_failed: bool
    background_tasks: list[dict[str, Any]]


class HealthTracker:
    """Thread-safe health tracking for server monitoring."""

    def __init__(self, stale_after_seconds: int = DEFAULT_STALE_AFTER_SECONDS) -> None:
        self._lock = threading.Lock()
        self._start_time = time.time()
        self._stale_after = stale_after_seconds
        self._last_fetch_attempt: Optional[float] = None
        self._last_fetch_success: Optional[float] = None
        self._consecutive_fetch_failures = 0
        self._last_write_failed = False
        self._hall_count = 0
        self._session_count = 0
        self._background_task_heartbeat: Optional[float] = None

    def record_fetch_attempt(self) -> None:
        with self._lock:
            self._last_fetch_attempt = time.time()

    def record_fetch_success(self, hall_count: int, session_count: int) -> None:
        """Record a successful poll across all active halls."""
        with self._lock:
            self._last_fetch_success = time.time()
            self._consecutive_fetch_failures = 0
            self._hall_count = hall_count
            self._session_count = session_count

    def record_fetch_failure(self) -> None:
        with self._lock:
            self._consecutive_fetch_failures += 1

    def record_write_result(self, ok: bool) -> None:
        with self._lock:
            self._last_write_failed = not ok

    def record_background_heartbeat(self) -> None:
        with self._lock:
            self._background_task_heartbeat = time.time()

    def get_uptime_seconds(self) -> int:
        return int(time.time() - self._start_time)

    def get_last_fetch_age_seconds(self) -> Optional[int]:
        """Seconds since the last successful fetch, or None if never fetched."""
        if self._last_fetch_success is None:
            return None
        return int(time.time() - self._last_fetch_success)

    def get_background_task_status(self) -> dict[str, Any]:
        if self._background_task_heartbeat is None:
            return {"name": "poller_task", "status": "unknown", "last_heartbeat_age_s": None}

        heartbeat_age = int(time.time() - self._background_task_heartbeat)
        status = "running" if heartbeat_age < self._stale_after else "stale"
        return {"name": "poller_task", "status": status, "last_heartbeat_age_s": heartbeat_age}

    @property
    def is_online(self) -> bool:
        return self._consecutive_fetch_failures == 0

    def determine_overall_status(self) -> str:
        """Determine overall health status.

        Returns:
            "offline" while fetches are failing, "degraded" when never fetched,
            stale or after a failed write, otherwise "ok"
        """
        if self._consecutive_fetch_failures > 0:
            return STATUS_OFFLINE

        age = self.get_last_fetch_age_seconds()
        if age is None or age > self._stale_after:
            return STATUS_DEGRADED

        if self._last_write_failed:
            return STATUS_DEGRADED

        return STATUS_OK

    def get_health_status(self, current_time_iso: str) -> HealthStatus:
        return HealthStatus(
            status=self.determine_overall_status(),
            server_time_iso=current_time_iso,
            uptime_seconds=self.get_uptime_seconds(),
            pid=os.getpid(),
            hall_count=self._hall_count,
            session_count=self._session_count,
            last_fetch_success_age_seconds=self.get_last_fetch_age_seconds(),
            consecutive_fetch_failures=self._consecutive_fetch_failures,
            last_write_failed=self._last_write_failed,
            background_tasks=[self.get_background_task_status()],
        )

    def get_last_fetch_attempt_timestamp(self) -> Optional[float]:
        return self._last_fetch_attempt

    def get_last_fetch_success_timestamp(self) -> Optional[float]:
        return self._last_fetch_success
