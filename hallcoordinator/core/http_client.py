"""Shared HTTP client manager for session-store traffic.

Keeps one pooled ``httpx.AsyncClient`` per client id so each poll tick reuses
connections instead of opening new ones. Clients that keep failing are
recreated.
"""

import asyncio
import logging
import time
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

# Global state for shared HTTP clients
_shared_clients: dict[str, httpx.AsyncClient] = {}
_client_health: dict[str, dict[str, float]] = {}
_client_lock = asyncio.Lock()

DEFAULT_LIMITS = httpx.Limits(
    max_connections=10,
    max_keepalive_connections=5,
)

DEFAULT_TIMEOUT = httpx.Timeout(
    connect=5.0,
    read=15.0,
    write=10.0,
    pool=15.0,
)

DEFAULT_HEADERS: dict[str, str] = {
    "Accept": "application/json",
    "User-Agent": "hallcoordinator/1.0",
}

# Recreate client after 3 consecutive errors
HEALTH_ERROR_THRESHOLD = 3


def build_timeout(seconds: Optional[float]) -> httpx.Timeout:
    """Timeout with the given read budget, or the default."""
    if not seconds:
        return DEFAULT_TIMEOUT
    return httpx.Timeout(connect=min(5.0, seconds), read=seconds, write=seconds, pool=seconds)


async def get_shared_client(
    client_id: str = "default",
    limits: Optional[httpx.Limits] = None,
    timeout: Optional[httpx.Timeout] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Get or create a shared HTTP client with connection pooling.

    Args:
        client_id: Identifier for the client (allows multiple clients if needed)
        limits: Custom connection limits
        timeout: Custom timeout configuration
        transport: Custom transport (tests pass ``httpx.MockTransport``)

    Returns:
        Shared httpx.AsyncClient

    Raises:
        RuntimeError: If client creation fails
    """
    async with _client_lock:
        await _recreate_client_if_unhealthy(client_id)

        if client_id not in _shared_clients or _shared_clients[client_id].is_closed:
            try:
                effective_limits = limits or DEFAULT_LIMITS
                logger.debug(
                    "Creating shared HTTP client '%s' with limits: max_connections=%s",
                    client_id,
                    effective_limits.max_connections,
                )
                _shared_clients[client_id] = httpx.AsyncClient(
                    transport=transport,
                    limits=effective_limits,
                    timeout=timeout or DEFAULT_TIMEOUT,
                    follow_redirects=True,
                    headers=DEFAULT_HEADERS,
                )
                _client_health[client_id] = {
                    "error_count": 0,
                    "last_error_time": 0,
                    "created_time": time.time(),
                }
                logger.info("Created shared HTTP client '%s'", client_id)
            except Exception as e:
                logger.exception("Failed to create shared HTTP client '%s'", client_id)
                raise RuntimeError(f"Failed to create shared HTTP client: {e}") from e

        return _shared_clients[client_id]


async def close_all_clients() -> None:
    """Close all shared HTTP clients; call during application shutdown."""
    async with _client_lock:
        for client_id, client in _shared_clients.items():
            try:
                if not client.is_closed:
                    await client.aclose()
                    logger.debug("Closed shared HTTP client '%s'", client_id)
            except Exception as e:
                logger.warning("Error closing shared HTTP client '%s': %s", client_id, e)

        _shared_clients.clear()
        _client_health.clear()
        logger.debug("All shared HTTP clients closed")


async def record_client_error(client_id: str = "default") -> None:
    """Record an error for health tracking."""
    async with _client_lock:
        health = _client_health.setdefault(
            client_id, {"error_count": 0, "last_error_time": 0, "created_time": time.time()}
        )
        health["error_count"] += 1
        health["last_error_time"] = time.time()
        logger.debug("Recorded error for client '%s': %d errors", client_id, health["error_count"])


async def record_client_success(client_id: str = "default") -> None:
    """Reset the consecutive error count after a successful request."""
    async with _client_lock:
        if client_id in _client_health:
            _client_health[client_id]["error_count"] = 0


async def _recreate_client_if_unhealthy(client_id: str) -> None:
    """Close a client that exceeded the error threshold. Called with lock held."""
    health = _client_health.get(client_id)
    client = _shared_clients.get(client_id)
    if health is None or client is None:
        return
    if health["error_count"] < HEALTH_ERROR_THRESHOLD:
        return

    logger.warning(
        "Recreating unhealthy HTTP client '%s' after %d errors",
        client_id,
        int(health["error_count"]),
    )
    try:
        if not client.is_closed:
            await client.aclose()
    except Exception as e:
        logger.debug("Error closing unhealthy client '%s': %s", client_id, e)
    del _shared_clients[client_id]
    del _client_health[client_id]
