"""Coordinator status and readiness checklist for a session.

Status transitions are deliberately permissive: a coordinator may set any
status from any other one (jumping straight to cancelled is a real need). The
only validation is membership in the enumeration. Each change is written
immediately as a partial update touching just the changed field plus
``updated_at``.

Checklist items are written one key at a time so two coordinators ticking
different items cannot overwrite each other's map.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, assert_never

from ..core.timezone_utils import now_utc
from ..exceptions import InputValidationError, InvalidChecklistKeyError, InvalidStatusError
from ..models import Checklist, ChecklistKey, CoordinatorStatus

if TYPE_CHECKING:
    from ..store.base import SessionStore

logger = logging.getLogger(__name__)

# Suggested forward step shown as the primary action; side states have none
SUGGESTED_NEXT: dict[CoordinatorStatus, CoordinatorStatus | None] = {
    CoordinatorStatus.SCHEDULED: CoordinatorStatus.SPEAKER_ARRIVED,
    CoordinatorStatus.SPEAKER_ARRIVED: CoordinatorStatus.IN_PROGRESS,
    CoordinatorStatus.IN_PROGRESS: CoordinatorStatus.COMPLETED,
    CoordinatorStatus.COMPLETED: None,
    CoordinatorStatus.DELAYED: CoordinatorStatus.IN_PROGRESS,
    CoordinatorStatus.SPEAKER_ABSENT: CoordinatorStatus.SPEAKER_ARRIVED,
    CoordinatorStatus.CANCELLED: None,
}


def status_label(status: CoordinatorStatus) -> str:
    """Human label for a status."""
    match status:
        case CoordinatorStatus.SCHEDULED:
            return "Scheduled"
        case CoordinatorStatus.SPEAKER_ARRIVED:
            return "Speaker Ready"
        case CoordinatorStatus.IN_PROGRESS:
            return "LIVE"
        case CoordinatorStatus.COMPLETED:
            return "Completed"
        case CoordinatorStatus.DELAYED:
            return "Delayed"
        case CoordinatorStatus.SPEAKER_ABSENT:
            return "No Speaker"
        case CoordinatorStatus.CANCELLED:
            return "Cancelled"
        case _:
            assert_never(status)


def parse_status(value: Any) -> CoordinatorStatus:
    """Validate a requested status value.

    Raises:
        InvalidStatusError: if the value is not in the enumeration
    """
    try:
        return CoordinatorStatus(value)
    except ValueError as e:
        raise InvalidStatusError(f"unknown coordinator status: {value!r}") from e


def parse_checklist_key(value: Any) -> ChecklistKey:
    """Validate a checklist key.

    Raises:
        InvalidChecklistKeyError: if the key is not one of the five flags
    """
    try:
        return ChecklistKey(value)
    except ValueError as e:
        raise InvalidChecklistKeyError(f"unknown checklist item: {value!r}") from e


def toggle_checklist(checklist: Checklist, key: ChecklistKey) -> Checklist:
    """Return a copy of the checklist with one flag flipped."""
    return checklist.model_copy(update={key.value: not checklist.get(key)})


def _timestamp() -> str:
    return now_utc().isoformat()


class SessionController:
    """Issues coordinator writes for sessions to the session store."""

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    async def set_status(self, session_id: str, status: Any) -> dict[str, Any]:
        """Write a new coordinator status.

        Returns:
            The patch that was written

        Raises:
            InvalidStatusError: status not in the enumeration
            SessionWriteError: the store rejected the write
        """
        new_status = parse_status(status)
        patch = {"coordinator_status": new_status.value, "updated_at": _timestamp()}
        await self._store.update_session(session_id, patch)
        logger.info("Session %s status -> %s", session_id, new_status.value)
        return patch

    async def set_checklist_item(self, session_id: str, key: Any, value: bool) -> dict[str, Any]:
        """Write a single checklist flag."""
        item = parse_checklist_key(key)
        updated_at = _timestamp()
        await self._store.set_checklist_item(session_id, item.value, bool(value), updated_at)
        logger.info("Session %s checklist %s -> %s", session_id, item.value, bool(value))
        return {"key": item.value, "value": bool(value), "updated_at": updated_at}

    async def toggle_checklist_item(
        self, session_id: str, checklist: Checklist, key: Any
    ) -> Checklist:
        """Flip one flag relative to the caller's view of the checklist.

        Returns:
            The checklist with the flag flipped
        """
        item = parse_checklist_key(key)
        toggled = toggle_checklist(checklist, item)
        await self.set_checklist_item(session_id, item, toggled.get(item))
        return toggled

    async def set_notes(self, session_id: str, notes: str | None) -> dict[str, Any]:
        patch = {"coordinator_notes": notes or "", "updated_at": _timestamp()}
        await self._store.update_session(session_id, patch)
        logger.debug("Session %s notes updated (%d chars)", session_id, len(notes or ""))
        return patch

    async def set_audience_count(self, session_id: str, count: Any) -> dict[str, Any]:
        """Write the audience head count.

        Raises:
            InputValidationError: count is not a non-negative integer
        """
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise InputValidationError("audience_count must be a non-negative integer")
        patch = {"audience_count": count, "updated_at": _timestamp()}
        await self._store.update_session(session_id, patch)
        logger.debug("Session %s audience_count -> %d", session_id, count)
        return patch
