import datetime
import json
import zoneinfo
from collections.abc import AsyncIterator, Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from hallcoordinator.core.http_client import close_all_clients
from hallcoordinator.models import RosterEntry, Session
from hallcoordinator.store.memory_store import InMemoryIssueStore, InMemorySessionStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"

EVENT_DAY = datetime.date(2026, 3, 10)
EVENT_ZONE = zoneinfo.ZoneInfo("Asia/Kolkata")

HALLCOORD_ENV_VARS = (
    "HALLCOORD_TEST_TIME",
    "HALLCOORD_TIMEZONE",
    "HALLCOORD_SUPABASE_URL",
    "HALLCOORD_SUPABASE_KEY",
    "HALLCOORD_FIXTURES_PATH",
    "HALLCOORD_POLL_INTERVAL",
    "HALLCOORD_ROSTER_REFRESH_INTERVAL",
    "HALLCOORD_WEB_HOST",
    "HALLCOORD_WEB_PORT",
    "HALLCOORD_REQUEST_TIMEOUT",
    "HALLCOORD_CONTROL_CONTACTS",
    "HALLCOORD_LOG_LEVEL",
    "HALLCOORD_DEBUG",
)


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear HALLCOORD_* variables before each test.

    Tests freeze the clock with HALLCOORD_TEST_TIME; a value leaking from the
    developer's shell (or a previous test) would shift every classification.
    """
    for name in HALLCOORD_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close shared httpx clients after every test to avoid leaking pools."""
    yield
    await close_all_clients()


@pytest.fixture
def local_time() -> Callable[..., datetime.datetime]:
    """Build an aware datetime in the event timezone from ``HH:MM``."""

    def _at(hhmm: str, day: datetime.date = EVENT_DAY) -> datetime.datetime:
        hours, minutes = (int(p) for p in hhmm.split(":"))
        return datetime.datetime(day.year, day.month, day.day, hours, minutes, tzinfo=EVENT_ZONE)

    return _at


@pytest.fixture
def session_factory() -> Callable[..., Session]:
    """Create a Session on the event day with overridable fields."""

    def _make(**overrides: Any) -> Session:
        data: dict[str, Any] = {
            "id": "sess-1",
            "session_name": "Session",
            "session_date": EVENT_DAY,
            "start_time": "10:00:00",
            "end_time": "10:30:00",
            "event_id": "evt-1",
            "hall": "Hall A",
        }
        data.update(overrides)
        return Session.model_validate(data)

    return _make


@pytest.fixture
def hall_agenda() -> dict[str, Any]:
    """Two-day agenda for Hall A plus one Hall B session and a small roster.

    On 2026-03-10:
      - s1 08:30-09:30 completed
      - s2 10:00-10:30 in progress, contact-annotated speakers
      - s3 11:00-11:45 "Keynote Address by Meera Iyer"
      - s4 12:00-12:30 moderator and annotated chairperson
    On 2026-03-11:
      - s5 09:00-10:00
    """
    return json.loads((FIXTURES_DIR / "hall_agenda.json").read_text(encoding="utf-8"))


@pytest.fixture
def hall_sessions(hall_agenda: dict[str, Any]) -> list[Session]:
    """Hall A sessions ordered by date and start time."""
    return [Session.model_validate(s) for s in hall_agenda["sessions"] if s["hall"] == "Hall A"]


@pytest.fixture
def roster(hall_agenda: dict[str, Any]) -> list[RosterEntry]:
    return [
        RosterEntry.model_validate(r)
        for r in hall_agenda["registrations"]
        if r["event_id"] == "evt-1"
    ]


@pytest.fixture
def memory_store(hall_agenda: dict[str, Any]) -> InMemorySessionStore:
    return InMemorySessionStore(
        coordinators=hall_agenda["coordinators"],
        sessions=hall_agenda["sessions"],
        registrations=hall_agenda["registrations"],
    )


@pytest.fixture
def issue_store() -> InMemoryIssueStore:
    return InMemoryIssueStore()
