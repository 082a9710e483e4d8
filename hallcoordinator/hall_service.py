"""Hall dashboards and the registry that hands them out per coordinator token.

Coordinators of the same hall share one dashboard, so a write by one of them
and the refetch that follows are seen by every viewer of that hall.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from .core.health_tracker import HealthTracker
from .core.timezone_utils import now_local
from .domain.contact_resolver import ContactResolver
from .domain.issues import advance_issue, issue_info, open_issue_count, report_issue
from .domain.live_view import HallView, build_hall_view
from .domain.messaging import (
    DEFAULT_CONTROL_CONTACTS,
    ContactCard,
    ControlContact,
    control_contact_cards,
    format_issue_message,
    mention_card,
    whatsapp_link,
)
from .domain.status_machine import (
    SessionController,
    parse_checklist_key,
    parse_status,
    toggle_checklist,
)
from .domain.text_parser import parse_session_people
from .exceptions import (
    AccessDeniedError,
    InputValidationError,
    SessionFetchError,
    SessionNotFoundError,
    SessionWriteError,
)
from .models import CoordinatorInfo, Issue, PersonMention, Session
from .store.base import IssueStore, SessionStore
from .store.memory_store import InMemoryIssueStore

logger = logging.getLogger(__name__)

_UNSET: Any = object()


@dataclass(frozen=True)
class IssueReport:
    """A freshly reported issue with its hand-off message."""

    issue: Issue
    message: str
    whatsapp_link: Optional[str]


class HallDashboard:
    """Snapshot and write path for one hall of one event."""

    def __init__(
        self,
        event_id: str,
        hall_name: str,
        session_store: SessionStore,
        issue_store: IssueStore,
        resolver: ContactResolver,
        health: Optional[HealthTracker] = None,
        control_contacts: Sequence[ControlContact] = DEFAULT_CONTROL_CONTACTS,
        event_timezone: Optional[str] = None,
    ) -> None:
        self.event_id = event_id
        self.hall_name = hall_name
        self._store = session_store
        self._issues = issue_store
        self._resolver = resolver
        self._health = health
        self._control_contacts = tuple(control_contacts)
        self._event_timezone = event_timezone
        self._controller = SessionController(session_store)
        self._lock = asyncio.Lock()
        self._sessions: tuple[Session, ...] = ()
        self._online = False
        self._last_refresh: Optional[datetime.datetime] = None

    @property
    def sessions(self) -> tuple[Session, ...]:
        return self._sessions

    @property
    def online(self) -> bool:
        return self._online

    @property
    def last_refresh(self) -> Optional[datetime.datetime]:
        return self._last_refresh

    @property
    def resolver(self) -> ContactResolver:
        return self._resolver

    def now(self) -> datetime.datetime:
        return now_local(self._event_timezone)

    async def refresh(self) -> bool:
        """Refetch the session list, replacing the snapshot wholesale.

        On failure the previous snapshot is kept and the dashboard reports
        itself offline.

        Returns:
            True when the fetch succeeded
        """
        try:
            sessions = await self._store.list_sessions(self.event_id, self.hall_name)
        except SessionFetchError as e:
            logger.warning("Refresh of hall %r failed, keeping snapshot: %s", self.hall_name, e)
            self._online = False
            return False

        async with self._lock:
            self._sessions = tuple(sessions)
        self._online = True
        self._last_refresh = self.now()
        logger.debug("Hall %r refreshed: %d sessions", self.hall_name, len(sessions))
        return True

    def get_session(self, session_id: str) -> Session:
        for session in self._sessions:
            if session.id == session_id:
                return session
        raise SessionNotFoundError(f"session {session_id} is not in hall {self.hall_name!r}")

    async def _apply_local(self, session_id: str, updates: dict[str, Any]) -> None:
        async with self._lock:
            self._sessions = tuple(
                s.model_copy(update=updates) if s.id == session_id else s for s in self._sessions
            )

    async def _write(self, session_id: str, optimistic: dict[str, Any], write: Any) -> Any:
        """Apply an optimistic local update, issue the write, then refetch.

        A failed write is not retried. The optimistic state stays until the
        next successful poll replaces the snapshot.
        """
        await self._apply_local(session_id, optimistic)
        try:
            result = await write
        except SessionWriteError:
            if self._health is not None:
                self._health.record_write_result(ok=False)
            raise
        if self._health is not None:
            self._health.record_write_result(ok=True)
        await self.refresh()
        return result

    async def set_status(self, session_id: str, status: Any) -> Session:
        self.get_session(session_id)
        new_status = parse_status(status)
        await self._write(
            session_id,
            {"coordinator_status": new_status.value},
            self._controller.set_status(session_id, new_status),
        )
        return self.get_session(session_id)

    async def set_checklist_item(
        self, session_id: str, key: Any, value: Optional[bool] = None
    ) -> Session:
        """Toggle one checklist item, or set it when ``value`` is given."""
        session = self.get_session(session_id)
        item = parse_checklist_key(key)
        if value is None:
            updated = toggle_checklist(session.checklist, item)
            write = self._controller.toggle_checklist_item(session_id, session.checklist, item)
        else:
            updated = session.checklist.model_copy(update={item.value: bool(value)})
            write = self._controller.set_checklist_item(session_id, item, bool(value))
        await self._write(session_id, {"coordinator_checklist": updated.as_map()}, write)
        return self.get_session(session_id)

    async def update_details(
        self, session_id: str, notes: Any = _UNSET, audience_count: Any = _UNSET
    ) -> Session:
        """Write coordinator notes and/or the audience count."""
        self.get_session(session_id)
        if notes is _UNSET and audience_count is _UNSET:
            raise InputValidationError("nothing to update")
        if notes is not _UNSET and notes is not None and not isinstance(notes, str):
            raise InputValidationError("coordinator_notes must be a string")
        if audience_count is not _UNSET and (
            isinstance(audience_count, bool)
            or not isinstance(audience_count, int)
            or audience_count < 0
        ):
            raise InputValidationError("audience_count must be a non-negative integer")

        if notes is not _UNSET:
            await self._write(
                session_id,
                {"coordinator_notes": notes or ""},
                self._controller.set_notes(session_id, notes),
            )
        if audience_count is not _UNSET:
            await self._write(
                session_id,
                {"audience_count": audience_count},
                self._controller.set_audience_count(session_id, audience_count),
            )
        return self.get_session(session_id)

    def view(self, day: Optional[str] = None, now: Optional[datetime.datetime] = None) -> HallView:
        return build_hall_view(self._sessions, now or self.now(), day, self._resolver)

    def people(self, session_id: str) -> list[PersonMention]:
        return parse_session_people(self.get_session(session_id), self._resolver)

    def contacts(self, now: Optional[datetime.datetime] = None) -> dict[str, list[ContactCard]]:
        """Control-room desks plus the people of the live (or next) session."""
        view = self.view(now=now)
        focus = view.live or view.next
        people = [mention_card(m) for m in focus.people] if focus else []
        return {"control": control_contact_cards(self._control_contacts), "session": people}

    def report_issue(
        self,
        coordinator: CoordinatorInfo,
        issue_type: Any,
        description: Optional[str] = None,
        now: Optional[datetime.datetime] = None,
    ) -> IssueReport:
        """Report an issue against the live session and build the hand-off text."""
        moment = now or self.now()
        live = self.view(now=moment).live
        session = live.session if live else None
        issue = report_issue(
            self._issues, issue_type, description, session.id if session else None
        )
        message = format_issue_message(
            issue,
            coordinator.hall_name,
            coordinator.coordinator_name,
            session.session_name if session else None,
            moment,
        )
        control = self._control_contacts[0] if self._control_contacts else None
        logger.debug("Issue %s routed to team %s", issue.id, issue_info(issue.type).team)
        return IssueReport(
            issue=issue,
            message=message,
            whatsapp_link=whatsapp_link(control.phone, message) if control else None,
        )

    def list_issues(self) -> list[Issue]:
        return self._issues.list_issues()

    def advance_issue(self, issue_id: str, status: Any) -> Issue:
        return advance_issue(self._issues, issue_id, status)

    def open_issue_count(self) -> int:
        return open_issue_count(self._issues.list_issues())


class HallRegistry:
    """Resolves coordinator tokens and owns one dashboard per hall."""

    def __init__(
        self,
        session_store: SessionStore,
        health: Optional[HealthTracker] = None,
        control_contacts: Sequence[ControlContact] = DEFAULT_CONTROL_CONTACTS,
        event_timezone: Optional[str] = None,
        issue_store_factory: Callable[[], IssueStore] = InMemoryIssueStore,
    ) -> None:
        self._store = session_store
        self._health = health
        self._control_contacts = tuple(control_contacts)
        self._event_timezone = event_timezone
        self._issue_store_factory = issue_store_factory
        self._lock = asyncio.Lock()
        self._coordinators: dict[str, CoordinatorInfo] = {}
        self._dashboards: dict[tuple[str, str], HallDashboard] = {}
        self._resolvers: dict[str, ContactResolver] = {}

    @property
    def session_store(self) -> SessionStore:
        return self._store

    def dashboards(self) -> list[HallDashboard]:
        return list(self._dashboards.values())

    def event_ids(self) -> list[str]:
        return list(self._resolvers)

    async def resolve(self, token: str) -> tuple[CoordinatorInfo, HallDashboard]:
        """Coordinator context and hall dashboard for an access token.

        Raises:
            AccessDeniedError: token is unknown
            SessionFetchError: the coordinator record could not be read
        """
        coordinator = self._coordinators.get(token)
        if coordinator is None:
            coordinator = await self._store.get_coordinator(token)
            if coordinator is None:
                logger.info("Rejected unknown coordinator token")
                raise AccessDeniedError("invalid or unknown coordinator token")
            self._coordinators[token] = coordinator

        key = (coordinator.event_id, coordinator.hall_name)
        dashboard = self._dashboards.get(key)
        if dashboard is not None:
            return coordinator, dashboard

        created = False
        async with self._lock:
            dashboard = self._dashboards.get(key)
            if dashboard is None:
                resolver = self._resolvers.get(coordinator.event_id)
                new_event = resolver is None
                if resolver is None:
                    resolver = ContactResolver()
                    self._resolvers[coordinator.event_id] = resolver
                dashboard = HallDashboard(
                    coordinator.event_id,
                    coordinator.hall_name,
                    self._store,
                    self._issue_store_factory(),
                    resolver,
                    health=self._health,
                    control_contacts=self._control_contacts,
                    event_timezone=self._event_timezone,
                )
                self._dashboards[key] = dashboard
                created = True
                logger.info(
                    "Opened dashboard for hall %r (%s)", coordinator.hall_name, coordinator.coordinator_name
                )

        if created:
            if new_event:
                await self.refresh_roster(coordinator.event_id)
            await dashboard.refresh()
        return coordinator, dashboard

    async def refresh_roster(self, event_id: str) -> bool:
        """Refetch an event's roster and install it on the shared resolver."""
        resolver = self._resolvers.setdefault(event_id, ContactResolver())
        try:
            roster = await self._store.list_roster(event_id)
        except SessionFetchError as e:
            logger.warning("Roster refresh for event %s failed, keeping previous: %s", event_id, e)
            return False
        resolver.set_roster(roster)
        return True

    async def refresh_all(self, include_roster: bool = False) -> bool:
        """Refetch every open hall (and optionally every roster).

        Returns:
            True when all session fetches succeeded
        """
        if include_roster:
            for event_id in self.event_ids():
                await self.refresh_roster(event_id)

        dashboards = self.dashboards()
        results = await asyncio.gather(*(d.refresh() for d in dashboards))
        ok = all(results)
        if self._health is not None:
            if ok:
                self._health.record_fetch_success(
                    hall_count=len(dashboards),
                    session_count=sum(len(d.sessions) for d in dashboards),
                )
            else:
                self._health.record_fetch_failure()
        return ok
