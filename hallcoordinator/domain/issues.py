"""Hall issue catalog and lifecycle.

Issue priority and the responsible team are fixed per issue type. Status only
moves forward: reported → acknowledged → in_progress → resolved.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Optional

from ..core.timezone_utils import now_utc
from ..exceptions import InputValidationError, InvalidIssueTransitionError
from ..models import Issue, IssuePriority, IssueStatus, IssueType

if TYPE_CHECKING:
    from ..store.base import IssueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssueInfo:
    label: str
    priority: IssuePriority
    team: str


ISSUE_CATALOG: dict[IssueType, IssueInfo] = {
    IssueType.AV_FAILURE: IssueInfo("AV/Projector Down", IssuePriority.CRITICAL, "Technical"),
    IssueType.MIC_ISSUE: IssueInfo("Mic Not Working", IssuePriority.HIGH, "Technical"),
    IssueType.SPEAKER_MISSING: IssueInfo("Speaker Not Here", IssuePriority.CRITICAL, "Program"),
    IssueType.SPEAKER_LATE: IssueInfo("Speaker Late", IssuePriority.MEDIUM, "Program"),
    IssueType.OVERCROWDING: IssueInfo("Overcrowded", IssuePriority.HIGH, "Security"),
    IssueType.AC_ISSUE: IssueInfo("AC Problem", IssuePriority.MEDIUM, "Facilities"),
    IssueType.LIGHTING: IssueInfo("Lighting", IssuePriority.LOW, "Facilities"),
    IssueType.SOUND_ISSUE: IssueInfo("Sound Issue", IssuePriority.HIGH, "Technical"),
    IssueType.EMERGENCY: IssueInfo("Emergency", IssuePriority.CRITICAL, "Security"),
    IssueType.OTHER: IssueInfo("Other", IssuePriority.MEDIUM, "Control"),
}

_STATUS_ORDER = {status: index for index, status in enumerate(IssueStatus)}


def issue_info(issue_type: IssueType) -> IssueInfo:
    return ISSUE_CATALOG[issue_type]


def parse_issue_type(value: Any) -> IssueType:
    """Validate an issue type from request input.

    Raises:
        InputValidationError: if the type is not in the catalog
    """
    try:
        return IssueType(value)
    except ValueError as e:
        raise InputValidationError(f"unknown issue type: {value!r}") from e


def parse_issue_status(value: Any) -> IssueStatus:
    try:
        return IssueStatus(value)
    except ValueError as e:
        raise InputValidationError(f"unknown issue status: {value!r}") from e


def can_advance(current: IssueStatus, target: IssueStatus) -> bool:
    """True when ``target`` is the same as or later than ``current``."""
    return _STATUS_ORDER[target] >= _STATUS_ORDER[current]


def report_issue(
    store: IssueStore,
    issue_type: Any,
    description: Optional[str] = None,
    session_id: Optional[str] = None,
    created_at: Optional[datetime.datetime] = None,
) -> Issue:
    """Create an issue with the priority the catalog assigns to its type."""
    kind = parse_issue_type(issue_type)
    issue = Issue(
        id=str(uuid.uuid4()),
        type=kind,
        description=(description or "").strip(),
        priority=ISSUE_CATALOG[kind].priority,
        session_id=session_id,
        created_at=created_at or now_utc(),
    )
    store.create(issue)
    logger.info(
        "Issue %s reported: %s (%s) session=%s",
        issue.id,
        kind.value,
        issue.priority.value,
        session_id,
    )
    return issue


def advance_issue(store: IssueStore, issue_id: str, status: Any) -> Issue:
    """Move an issue forward in its lifecycle.

    Setting the current status again is a no-op.

    Raises:
        IssueNotFoundError: unknown issue id
        InvalidIssueTransitionError: target status is behind the current one
    """
    target = parse_issue_status(status)
    issue = store.get(issue_id)
    if target == issue.status:
        return issue
    if not can_advance(issue.status, target):
        raise InvalidIssueTransitionError(
            f"issue {issue_id} cannot move from {issue.status.value} to {target.value}"
        )
    updated = store.update_status(issue_id, target)
    logger.info("Issue %s status %s -> %s", issue_id, issue.status.value, target.value)
    return updated


def open_issue_count(issues: Iterable[Issue]) -> int:
    return sum(1 for issue in issues if issue.status != IssueStatus.RESOLVED)
