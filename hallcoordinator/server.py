"""aiohttp server and background poller for hall coordinator dashboards."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import Any, Optional

from aiohttp import web

from .core.config_manager import (
    DEFAULT_SERVER_BIND,
    DEFAULT_SERVER_PORT,
    ConfigManager,
    get_config_value,
)
from .core.health_tracker import HealthTracker
from .core.http_client import close_all_clients
from .core.timezone_utils import now_utc
from .domain.messaging import parse_control_contacts
from .hall_service import HallRegistry
from .logging_config import configure_logging
from .middleware import correlation_id_middleware, error_middleware
from .poller import refresh_loop
from .routes import register_api_routes
from .store.base import SessionStore
from .store.memory_store import InMemorySessionStore
from .store.supabase_store import SupabaseSessionStore

logger = logging.getLogger(__name__)

REGISTRY_KEY = web.AppKey("registry", HallRegistry)
HEALTH_KEY = web.AppKey("health_tracker", HealthTracker)


def _build_default_config_from_env() -> dict[str, Any]:
    """Load .env defaults and map HALLCOORD_* variables to a config dict."""
    return ConfigManager().load_full_config()


def build_session_store(config: Any) -> SessionStore:
    """Pick the session store from configuration.

    A fixtures file wins over Supabase credentials so rehearsals never touch
    the live database.

    Raises:
        ValueError: neither a fixtures path nor Supabase credentials are set
    """
    fixtures = get_config_value(config, "fixtures_path")
    if fixtures:
        logger.info("Using in-memory session store seeded from %s", fixtures)
        return InMemorySessionStore.from_json_file(fixtures)

    url = get_config_value(config, "supabase_url")
    key = get_config_value(config, "supabase_key")
    if url and key:
        logger.info("Using Supabase session store at %s", url)
        return SupabaseSessionStore(url, key, get_config_value(config, "request_timeout"))

    raise ValueError(
        "No session store configured: set HALLCOORD_FIXTURES_PATH or "
        "HALLCOORD_SUPABASE_URL and HALLCOORD_SUPABASE_KEY"
    )


def build_registry(
    config: Any, session_store: SessionStore, health: Optional[HealthTracker] = None
) -> HallRegistry:
    return HallRegistry(
        session_store,
        health=health,
        control_contacts=parse_control_contacts(get_config_value(config, "control_contacts")),
        event_timezone=get_config_value(config, "event_timezone"),
    )


def make_app(registry: HallRegistry, health: HealthTracker) -> web.Application:
    """Create the aiohttp application with routes wired to the registry."""
    app = web.Application(middlewares=[correlation_id_middleware, error_middleware])
    app[REGISTRY_KEY] = registry
    app[HEALTH_KEY] = health
    register_api_routes(app, registry, health, now_utc)

    async def _shutdown(_app: web.Application) -> None:
        logger.info("Application shutdown requested")

    app.on_shutdown.append(_shutdown)
    return app


async def serve(
    config: Any,
    session_store: Optional[SessionStore] = None,
    external_stop_event: Optional[asyncio.Event] = None,
) -> None:
    """Run the server and background poller until signalled to stop.

    Args:
        config: Server configuration dict
        session_store: Store to use; built from config when omitted
        external_stop_event: If provided, signal handlers are NOT registered
            and the caller owns shutdown
    """
    stop_event = external_stop_event or asyncio.Event()
    health = HealthTracker(
        stale_after_seconds=max(
            60, 6 * int(get_config_value(config, "poll_interval_seconds", 10))
        )
    )
    store = session_store or build_session_store(config)
    registry = build_registry(config, store, health)
    app = make_app(registry, health)

    runner = web.AppRunner(app)
    await runner.setup()

    host = get_config_value(config, "server_bind", DEFAULT_SERVER_BIND)
    port = int(get_config_value(config, "server_port", DEFAULT_SERVER_PORT))
    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", host, port)
        await runner.cleanup()
        raise
    logger.info("Server started on %s:%d", host, port)

    poller = asyncio.create_task(refresh_loop(config, registry, stop_event, health))

    if external_stop_event is None:
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    poller.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await poller

    await runner.cleanup()
    await close_all_clients()
    logger.info("Server shutdown complete")


def start_server(config: Any) -> None:
    """Start the event loop and block until SIGINT/SIGTERM."""
    configure_logging(
        debug_mode=bool(get_config_value(config, "debug_logging", False)),
        level_name=get_config_value(config, "log_level"),
    )
    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
