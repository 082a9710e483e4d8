"""HTTP API routes for hall coordinator dashboards."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from aiohttp import web

from ..core.health_tracker import STATUS_OFFLINE, HealthTracker
from ..domain.live_view import UNDATED_DAY, session_view_to_dict, view_to_dict
from ..domain.messaging import serialize_cards
from ..exceptions import InputValidationError
from ..hall_service import HallDashboard, HallRegistry
from ..models import CoordinatorInfo, Issue

logger = logging.getLogger(__name__)


async def _read_json(request: web.Request, required: bool = True) -> dict[str, Any]:
    """Parse a JSON object body; an absent body reads as ``{}`` when optional."""
    if not request.can_read_body:
        if required:
            raise InputValidationError("request body required")
        return {}
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InputValidationError("invalid json") from e
    if not isinstance(data, dict):
        raise InputValidationError("json body must be an object")
    return data


def _coordinator_to_dict(coordinator: CoordinatorInfo) -> dict[str, Any]:
    event = coordinator.event
    return {
        "hall_name": coordinator.hall_name,
        "coordinator_name": coordinator.coordinator_name,
        "coordinator_email": coordinator.coordinator_email,
        "coordinator_phone": coordinator.coordinator_phone,
        "event_id": coordinator.event_id,
        "event": (
            {
                "id": event.id,
                "name": event.display_name,
                "venue_name": event.venue_name,
                "city": event.city,
                "start_date": event.start_date.isoformat() if event.start_date else None,
                "end_date": event.end_date.isoformat() if event.end_date else None,
                "logo_url": event.logo_url,
            }
            if event
            else None
        ),
    }


def _issue_to_dict(issue: Issue) -> dict[str, Any]:
    return issue.model_dump(mode="json")


def register_api_routes(
    app: web.Application,
    registry: HallRegistry,
    health_tracker: HealthTracker,
    time_provider: Callable[[], Any],
) -> None:
    """Register hall coordinator API routes.

    Args:
        app: aiohttp web application
        registry: Token to dashboard registry
        health_tracker: Health tracking instance
        time_provider: Returns the current UTC datetime
    """

    async def _dashboard_for(request: web.Request) -> tuple[CoordinatorInfo, HallDashboard]:
        return await registry.resolve(request.match_info["token"])

    def _session_payload(dashboard: HallDashboard, session_id: str) -> dict[str, Any]:
        view = dashboard.view()
        for entry in view.sessions:
            if entry.session.id == session_id:
                return session_view_to_dict(entry)
        # Session on a day other than the default one
        day = dashboard.get_session(session_id).session_date
        for entry in dashboard.view(day=day.isoformat() if day else UNDATED_DAY).sessions:
            if entry.session.id == session_id:
                return session_view_to_dict(entry)
        return {"id": session_id}

    async def health_check(_request: web.Request) -> web.Response:
        """Health indicator for monitoring and the dashboard's online badge."""
        now_iso = time_provider().isoformat()
        health = health_tracker.get_health_status(now_iso)
        data = {
            "status": health.status,
            "server_time_iso": health.server_time_iso,
            "server_status": {"uptime_s": health.uptime_seconds, "pid": health.pid},
            "data_status": {
                "hall_count": health.hall_count,
                "session_count": health.session_count,
                "last_fetch_success_age_s": health.last_fetch_success_age_seconds,
                "consecutive_fetch_failures": health.consecutive_fetch_failures,
                "last_write_failed": health.last_write_failed,
            },
            "background_tasks": health.background_tasks,
        }
        http_status = 503 if health.status == STATUS_OFFLINE else 200
        return web.json_response(data, status=http_status)

    async def dashboard(request: web.Request) -> web.Response:
        coordinator, hall = await _dashboard_for(request)
        view = hall.view(day=request.query.get("day"))
        payload = view_to_dict(view)
        payload.update(
            {
                "state": "online" if hall.online else "offline",
                "coordinator": _coordinator_to_dict(coordinator),
                "open_issues": hall.open_issue_count(),
                "last_refresh_iso": hall.last_refresh.isoformat() if hall.last_refresh else None,
            }
        )
        return web.json_response(payload)

    async def set_status(request: web.Request) -> web.Response:
        _, hall = await _dashboard_for(request)
        data = await _read_json(request)
        if "status" not in data:
            raise InputValidationError("missing status")
        session_id = request.match_info["session_id"]
        await hall.set_status(session_id, data["status"])
        return web.json_response({"session": _session_payload(hall, session_id)})

    async def set_checklist(request: web.Request) -> web.Response:
        _, hall = await _dashboard_for(request)
        data = await _read_json(request, required=False)
        value = data.get("value")
        if value is not None and not isinstance(value, bool):
            raise InputValidationError("value must be a boolean")
        session_id = request.match_info["session_id"]
        await hall.set_checklist_item(session_id, request.match_info["key"], value)
        return web.json_response({"session": _session_payload(hall, session_id)})

    async def update_session(request: web.Request) -> web.Response:
        _, hall = await _dashboard_for(request)
        data = await _read_json(request)
        unknown = set(data) - {"coordinator_notes", "audience_count"}
        if unknown:
            raise InputValidationError(f"fields not writable: {sorted(unknown)}")
        session_id = request.match_info["session_id"]
        fields: dict[str, Any] = {}
        if "coordinator_notes" in data:
            fields["notes"] = data["coordinator_notes"]
        if "audience_count" in data:
            fields["audience_count"] = data["audience_count"]
        await hall.update_details(session_id, **fields)
        return web.json_response({"session": _session_payload(hall, session_id)})

    async def session_people(request: web.Request) -> web.Response:
        _, hall = await _dashboard_for(request)
        people = hall.people(request.match_info["session_id"])
        return web.json_response({"people": [m.model_dump() for m in people]})

    async def list_issues(request: web.Request) -> web.Response:
        _, hall = await _dashboard_for(request)
        issues = hall.list_issues()
        return web.json_response(
            {"issues": [_issue_to_dict(i) for i in issues], "open_count": hall.open_issue_count()}
        )

    async def report_issue(request: web.Request) -> web.Response:
        coordinator, hall = await _dashboard_for(request)
        data = await _read_json(request)
        if "type" not in data:
            raise InputValidationError("missing issue type")
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            raise InputValidationError("description must be a string")
        report = hall.report_issue(coordinator, data["type"], description)
        return web.json_response(
            {
                "issue": _issue_to_dict(report.issue),
                "message": report.message,
                "whatsapp_link": report.whatsapp_link,
            },
            status=201,
        )

    async def update_issue(request: web.Request) -> web.Response:
        _, hall = await _dashboard_for(request)
        data = await _read_json(request)
        if "status" not in data:
            raise InputValidationError("missing status")
        issue = hall.advance_issue(request.match_info["issue_id"], data["status"])
        return web.json_response({"issue": _issue_to_dict(issue)})

    async def contacts(request: web.Request) -> web.Response:
        _, hall = await _dashboard_for(request)
        cards = hall.contacts()
        return web.json_response(
            {"control": serialize_cards(cards["control"]), "session": serialize_cards(cards["session"])}
        )

    async def refresh(request: web.Request) -> web.Response:
        _, hall = await _dashboard_for(request)
        ok = await hall.refresh()
        return web.json_response(
            {"refreshed": ok, "state": "online" if hall.online else "offline"},
            status=200 if ok else 503,
        )

    prefix = "/api/hall/{token}"
    app.router.add_get("/api/health", health_check)
    app.router.add_get(f"{prefix}/dashboard", dashboard)
    app.router.add_post(f"{prefix}/sessions/{{session_id}}/status", set_status)
    app.router.add_post(f"{prefix}/sessions/{{session_id}}/checklist/{{key}}", set_checklist)
    app.router.add_patch(f"{prefix}/sessions/{{session_id}}", update_session)
    app.router.add_get(f"{prefix}/sessions/{{session_id}}/people", session_people)
    app.router.add_get(f"{prefix}/issues", list_issues)
    app.router.add_post(f"{prefix}/issues", report_issue)
    app.router.add_post(f"{prefix}/issues/{{issue_id}}/status", update_issue)
    app.router.add_get(f"{prefix}/contacts", contacts)
    app.router.add_post(f"{prefix}/refresh", refresh)
    logger.debug("Registered hall coordinator API routes")
