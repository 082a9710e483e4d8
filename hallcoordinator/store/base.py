"""Storage interfaces used by the hall coordination engine."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from ..exceptions import InputValidationError
from ..models import CoordinatorInfo, Issue, IssueStatus, RosterEntry, Session

# Fields a coordinator is allowed to write on a session
WRITABLE_SESSION_FIELDS = frozenset(
    {
        "coordinator_status",
        "coordinator_checklist",
        "coordinator_notes",
        "audience_count",
        "updated_at",
    }
)


class SessionStore(Protocol):
    """External session store (reads, partial writes, coordinator lookup)."""

    async def get_coordinator(self, token: str) -> Optional[CoordinatorInfo]:
        """Resolve an access token to a coordinator, or None if unknown."""
        ...

    async def list_sessions(self, event_id: str, hall: str) -> list[Session]:
        """Sessions of one hall ordered by date then start time.

        Raises:
            SessionFetchError: the store could not be read
        """
        ...

    async def list_roster(self, event_id: str) -> list[RosterEntry]:
        """All registrants of an event with name and contact fields."""
        ...

    async def update_session(self, session_id: str, updates: dict[str, Any]) -> None:
        """Merge a partial update into a session.

        Raises:
            SessionWriteError: the write was rejected
        """
        ...

    async def set_checklist_item(
        self, session_id: str, key: str, value: bool, updated_at: str
    ) -> None:
        """Set one checklist key without replacing the rest of the map."""
        ...


class IssueStore(Protocol):
    """Where reported hall issues live."""

    def create(self, issue: Issue) -> Issue: ...

    def get(self, issue_id: str) -> Issue:
        """Raises IssueNotFoundError for unknown ids."""
        ...

    def list_issues(self, session_id: Optional[str] = None) -> list[Issue]:
        """Issues newest first, optionally for one session."""
        ...

    def update_status(self, issue_id: str, status: IssueStatus) -> Issue: ...


def check_writable(updates: dict[str, Any]) -> None:
    """Reject writes to fields the coordinator does not own."""
    unknown = set(updates) - WRITABLE_SESSION_FIELDS
    if unknown:
        raise InputValidationError(f"fields not writable by coordinator: {sorted(unknown)}")
