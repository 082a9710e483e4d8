"""Session store backed by a Supabase (PostgREST) endpoint."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..core.http_client import (
    build_timeout,
    get_shared_client,
    record_client_error,
    record_client_success,
)
from ..exceptions import SessionFetchError, SessionWriteError
from ..models import CoordinatorInfo, RosterEntry, Session
from .base import check_writable

logger = logging.getLogger(__name__)

CLIENT_ID = "session_store"

ROSTER_COLUMNS = (
    "attendee_name,attendee_phone,attendee_email,attendee_designation,"
    "first_name,last_name,phone,whatsapp"
)

CHECKLIST_RPC = "set_session_checklist_item"


class SupabaseSessionStore:
    """Reads and partial writes against the ``sessions``, ``registrations``
    and ``hall_coordinators`` tables.

    Checklist items are written through the ``set_session_checklist_item``
    database function (see ``sql/``), which merges one key into the JSON map
    server-side.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._rest_url = base_url.rstrip("/") + "/rest/v1"
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
        }
        self._timeout = build_timeout(timeout_seconds)
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_shared_client(CLIENT_ID, timeout=self._timeout)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, str]] = None,
        json: Any = None,
        extra_headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        client = await self._get_client()
        headers = dict(self._headers)
        if extra_headers:
            headers.update(extra_headers)
        response = await client.request(
            method, f"{self._rest_url}/{path}", params=params, json=json, headers=headers
        )
        response.raise_for_status()
        return response

    async def _fetch(self, path: str, params: dict[str, str]) -> list[dict[str, Any]]:
        try:
            response = await self._request("GET", path, params=params)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            await record_client_error(CLIENT_ID)
            logger.warning("Fetch of %s failed: %s", path, e)
            raise SessionFetchError(f"failed to read {path}: {e}") from e

        await record_client_success(CLIENT_ID)
        if not isinstance(data, list):
            raise SessionFetchError(f"unexpected payload from {path}: {type(data).__name__}")
        return data

    async def get_coordinator(self, token: str) -> Optional[CoordinatorInfo]:
        if not token:
            return None
        rows = await self._fetch(
            "hall_coordinators",
            {"select": "*,event:events(*)", "portal_token": f"eq.{token}", "limit": "1"},
        )
        if not rows:
            return None
        return CoordinatorInfo.model_validate(rows[0])

    async def list_sessions(self, event_id: str, hall: str) -> list[Session]:
        rows = await self._fetch(
            "sessions",
            {
                "select": "*",
                "event_id": f"eq.{event_id}",
                "hall": f"eq.{hall}",
                "order": "session_date.asc,start_time.asc",
            },
        )
        sessions = []
        for row in rows:
            try:
                sessions.append(Session.model_validate(row))
            except ValueError as e:
                # pydantic ValidationError subclasses ValueError
                logger.warning("Skipping malformed session row %r: %s", row.get("id"), e)
        return sessions

    async def list_roster(self, event_id: str) -> list[RosterEntry]:
        rows = await self._fetch(
            "registrations", {"select": ROSTER_COLUMNS, "event_id": f"eq.{event_id}"}
        )
        return [RosterEntry.model_validate(r) for r in rows]

    async def _write(self, method: str, path: str, **kwargs: Any) -> None:
        try:
            await self._request(
                method, path, extra_headers={"Prefer": "return=minimal"}, **kwargs
            )
        except httpx.HTTPError as e:
            await record_client_error(CLIENT_ID)
            logger.warning("Write to %s failed: %s", path, e)
            raise SessionWriteError(f"failed to write {path}: {e}") from e
        await record_client_success(CLIENT_ID)

    async def update_session(self, session_id: str, updates: dict[str, Any]) -> None:
        check_writable(updates)
        await self._write("PATCH", "sessions", params={"id": f"eq.{session_id}"}, json=updates)

    async def set_checklist_item(
        self, session_id: str, key: str, value: bool, updated_at: str
    ) -> None:
        await self._write(
            "POST",
            f"rpc/{CHECKLIST_RPC}",
            json={
                "p_session_id": session_id,
                "p_key": key,
                "p_value": value,
                "p_updated_at": updated_at,
            },
        )
