"""Unit tests for the hall issue catalog and lifecycle."""

import datetime

import pytest

from hallcoordinator.domain.issues import (
    ISSUE_CATALOG,
    advance_issue,
    can_advance,
    open_issue_count,
    report_issue,
)
from hallcoordinator.exceptions import (
    InputValidationError,
    InvalidIssueTransitionError,
    IssueNotFoundError,
)
from hallcoordinator.models import IssuePriority, IssueStatus, IssueType

pytestmark = pytest.mark.unit


class TestCatalog:
    """Tests for ISSUE_CATALOG."""

    def test_catalog_when_every_type_then_has_entry(self):
        assert set(ISSUE_CATALOG) == set(IssueType)

    @pytest.mark.parametrize(
        ("issue_type", "priority"),
        [
            (IssueType.AV_FAILURE, IssuePriority.CRITICAL),
            (IssueType.SPEAKER_MISSING, IssuePriority.CRITICAL),
            (IssueType.EMERGENCY, IssuePriority.CRITICAL),
            (IssueType.MIC_ISSUE, IssuePriority.HIGH),
            (IssueType.SPEAKER_LATE, IssuePriority.MEDIUM),
            (IssueType.LIGHTING, IssuePriority.LOW),
        ],
    )
    def test_catalog_when_type_then_fixed_priority(self, issue_type, priority):
        assert ISSUE_CATALOG[issue_type].priority == priority


class TestReportIssue:
    """Tests for report_issue."""

    def test_report_issue_when_valid_then_stored_with_catalog_priority(self, issue_store):
        issue = report_issue(issue_store, "mic_issue", "  Lapel mic dead  ", session_id="s2")

        assert issue.priority == IssuePriority.HIGH
        assert issue.status == IssueStatus.REPORTED
        assert issue.description == "Lapel mic dead"
        assert issue.session_id == "s2"
        assert issue_store.get(issue.id) == issue

    def test_report_issue_when_unknown_type_then_rejected(self, issue_store):
        with pytest.raises(InputValidationError):
            report_issue(issue_store, "projector_on_fire")

        assert issue_store.list_issues() == []

    def test_report_issue_when_frozen_clock_then_timestamp_used(self, issue_store, monkeypatch):
        monkeypatch.setenv("HALLCOORD_TEST_TIME", "2026-03-10T10:45:00+05:30")

        issue = report_issue(issue_store, IssueType.OTHER)

        assert issue.created_at == datetime.datetime(2026, 3, 10, 5, 15, tzinfo=datetime.UTC)

    def test_list_issues_when_several_then_newest_first(self, issue_store):
        early = report_issue(
            issue_store, "ac_issue", created_at=datetime.datetime(2026, 3, 10, 9, 0, tzinfo=datetime.UTC)
        )
        late = report_issue(
            issue_store, "lighting", created_at=datetime.datetime(2026, 3, 10, 11, 0, tzinfo=datetime.UTC)
        )

        assert [i.id for i in issue_store.list_issues()] == [late.id, early.id]


class TestAdvanceIssue:
    """Tests for forward-only issue status."""

    def test_advance_issue_when_forward_then_updated(self, issue_store):
        issue = report_issue(issue_store, "sound_issue")

        updated = advance_issue(issue_store, issue.id, "acknowledged")

        assert updated.status == IssueStatus.ACKNOWLEDGED
        assert issue_store.get(issue.id).status == IssueStatus.ACKNOWLEDGED

    def test_advance_issue_when_skipping_ahead_then_allowed(self, issue_store):
        issue = report_issue(issue_store, "sound_issue")

        assert advance_issue(issue_store, issue.id, "resolved").status == IssueStatus.RESOLVED

    def test_advance_issue_when_backward_then_rejected(self, issue_store):
        issue = report_issue(issue_store, "sound_issue")
        advance_issue(issue_store, issue.id, "in_progress")

        with pytest.raises(InvalidIssueTransitionError):
            advance_issue(issue_store, issue.id, "acknowledged")

    def test_advance_issue_when_same_status_then_no_op(self, issue_store):
        issue = report_issue(issue_store, "sound_issue")

        assert advance_issue(issue_store, issue.id, "reported") == issue

    def test_advance_issue_when_unknown_id_then_not_found(self, issue_store):
        with pytest.raises(IssueNotFoundError):
            advance_issue(issue_store, "missing", "resolved")

    def test_can_advance_when_ordered_then_forward_only(self):
        assert can_advance(IssueStatus.REPORTED, IssueStatus.RESOLVED)
        assert not can_advance(IssueStatus.RESOLVED, IssueStatus.REPORTED)

    def test_open_issue_count_when_one_resolved_then_excluded(self, issue_store):
        first = report_issue(issue_store, "ac_issue")
        report_issue(issue_store, "lighting")
        advance_issue(issue_store, first.id, "resolved")

        assert open_issue_count(issue_store.list_issues()) == 1
