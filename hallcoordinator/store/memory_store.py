"""In-memory stores for local runs, rehearsals and tests.

The session store can be seeded from a JSON file shaped like::

    {
      "coordinators": [{"portal_token": "...", "hall_name": "...", ...}],
      "sessions": [{"id": "...", "event_id": "...", "hall": "...", ...}],
      "registrations": [{"event_id": "...", "attendee_name": "...", ...}]
    }
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional

from ..exceptions import IssueNotFoundError, SessionWriteError
from ..models import CoordinatorInfo, Issue, IssueStatus, RosterEntry, Session
from .base import check_writable

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    """Session store backed by plain dictionaries.

    Checklist writes merge a single key into the stored map, and partial
    updates only touch the fields they name.
    """

    def __init__(
        self,
        coordinators: Optional[list[dict[str, Any]]] = None,
        sessions: Optional[list[dict[str, Any]]] = None,
        registrations: Optional[list[dict[str, Any]]] = None,
    ) -> None:
        self._lock = asyncio.Lock()
        self._coordinators = {c["portal_token"]: dict(c) for c in coordinators or []}
        self._sessions: dict[str, dict[str, Any]] = {
            str(s["id"]): dict(s) for s in sessions or []
        }
        self._registrations = [dict(r) for r in registrations or []]

    @classmethod
    def from_json_file(cls, path: str | Path) -> InMemorySessionStore:
        """Load a fixtures file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("fixtures JSON root must be an object")  # noqa: TRY004
        store = cls(
            coordinators=data.get("coordinators"),
            sessions=data.get("sessions"),
            registrations=data.get("registrations"),
        )
        logger.info(
            "Loaded fixtures from %s (%d sessions, %d registrations)",
            path,
            len(store._sessions),
            len(store._registrations),
        )
        return store

    async def get_coordinator(self, token: str) -> Optional[CoordinatorInfo]:
        record = self._coordinators.get(token)
        if record is None:
            return None
        return CoordinatorInfo.model_validate(record)

    async def list_sessions(self, event_id: str, hall: str) -> list[Session]:
        async with self._lock:
            rows = [
                copy.deepcopy(s)
                for s in self._sessions.values()
                if s.get("event_id") == event_id and s.get("hall") == hall
            ]
        rows.sort(key=lambda s: (s.get("session_date") or "", s.get("start_time") or ""))
        sessions = []
        for row in rows:
            try:
                sessions.append(Session.model_validate(row))
            except ValueError as e:
                logger.warning("Skipping malformed session row %r: %s", row.get("id"), e)
        return sessions

    async def list_roster(self, event_id: str) -> list[RosterEntry]:
        return [
            RosterEntry.model_validate(r)
            for r in self._registrations
            if r.get("event_id") in (None, event_id)
        ]

    async def update_session(self, session_id: str, updates: dict[str, Any]) -> None:
        check_writable(updates)
        async with self._lock:
            row = self._sessions.get(session_id)
            if row is None:
                raise SessionWriteError(f"session {session_id} not found")
            row.update(copy.deepcopy(updates))

    async def set_checklist_item(
        self, session_id: str, key: str, value: bool, updated_at: str
    ) -> None:
        async with self._lock:
            row = self._sessions.get(session_id)
            if row is None:
                raise SessionWriteError(f"session {session_id} not found")
            checklist = dict(row.get("coordinator_checklist") or {})
            checklist[key] = value
            row["coordinator_checklist"] = checklist
            row["updated_at"] = updated_at

    def raw_session(self, session_id: str) -> dict[str, Any]:
        """Stored row for a session (copy)."""
        return copy.deepcopy(self._sessions[session_id])


class InMemoryIssueStore:
    """Issue store that lives as long as the process.

    Issues are intentionally not persisted to the session store.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._issues: dict[str, Issue] = {}

    def create(self, issue: Issue) -> Issue:
        with self._lock:
            self._issues[issue.id] = issue
        return issue

    def get(self, issue_id: str) -> Issue:
        with self._lock:
            issue = self._issues.get(issue_id)
        if issue is None:
            raise IssueNotFoundError(f"issue {issue_id} not found")
        return issue

    def list_issues(self, session_id: Optional[str] = None) -> list[Issue]:
        with self._lock:
            issues = list(self._issues.values())
        if session_id is not None:
            issues = [i for i in issues if i.session_id == session_id]
        return sorted(issues, key=lambda i: i.created_at, reverse=True)

    def update_status(self, issue_id: str, status: IssueStatus) -> Issue:
        with self._lock:
            issue = self._issues.get(issue_id)
            if issue is None:
                raise IssueNotFoundError(f"issue {issue_id} not found")
            updated = issue.model_copy(update={"status": status})
            self._issues[issue_id] = updated
        return updated
