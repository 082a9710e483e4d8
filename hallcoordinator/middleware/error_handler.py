"""Translate hall coordinator exceptions into JSON error responses."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from aiohttp import web

from ..exceptions import (
    AccessDeniedError,
    HallCoordinatorError,
    InputValidationError,
    IssueNotFoundError,
    SessionFetchError,
    SessionNotFoundError,
    SessionWriteError,
)

logger = logging.getLogger(__name__)


def error_payload(exc: HallCoordinatorError) -> tuple[int, dict[str, Any]]:
    """HTTP status and body for a domain exception."""
    if isinstance(exc, AccessDeniedError):
        return 403, {"state": "denied"}
    if isinstance(exc, InputValidationError):
        return 400, {"error": str(exc)}
    if isinstance(exc, (SessionNotFoundError, IssueNotFoundError)):
        return 404, {"error": str(exc)}
    if isinstance(exc, SessionWriteError):
        return 502, {"error": str(exc), "state": "write_failed"}
    if isinstance(exc, SessionFetchError):
        return 503, {"error": str(exc), "state": "offline"}
    return 500, {"error": "internal error"}


@web.middleware
async def error_middleware(
    request: web.Request, handler: Callable[[web.Request], Any]
) -> web.StreamResponse:
    try:
        return await handler(request)
    except HallCoordinatorError as exc:
        status, body = error_payload(exc)
        if status >= 500:
            logger.warning("%s %s failed: %s", request.method, request.path, exc)
        else:
            logger.debug("%s %s rejected (%d): %s", request.method, request.path, status, exc)
        return web.json_response(body, status=status)
