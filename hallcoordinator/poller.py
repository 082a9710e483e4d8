"""Background polling of open hall dashboards."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

from .core.config_manager import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_ROSTER_REFRESH_INTERVAL_SECONDS,
    get_config_value,
)
from .core.health_tracker import HealthTracker
from .hall_service import HallRegistry

logger = logging.getLogger(__name__)


async def refresh_once(
    registry: HallRegistry,
    health: Optional[HealthTracker] = None,
    include_roster: bool = False,
) -> bool:
    """Single poll of every open hall."""
    if health is not None:
        health.record_fetch_attempt()
    ok = await registry.refresh_all(include_roster=include_roster)
    if health is not None:
        health.record_background_heartbeat()
    if not ok:
        logger.warning("Poll completed with fetch failures; serving previous snapshots")
    return ok


async def refresh_loop(
    config: Any,
    registry: HallRegistry,
    stop_event: asyncio.Event,
    health: Optional[HealthTracker] = None,
) -> None:
    """Background poller: refetch sessions every poll interval, rosters less often."""
    interval = int(get_config_value(config, "poll_interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS))
    roster_interval = int(
        get_config_value(
            config, "roster_refresh_interval_seconds", DEFAULT_ROSTER_REFRESH_INTERVAL_SECONDS
        )
    )
    logger.debug("refresh_loop starting: poll %ds, roster %ds", interval, roster_interval)

    last_roster_refresh = time.monotonic()
    while not stop_event.is_set():
        try:
            await asyncio.sleep(interval)
            if stop_event.is_set():
                break
            roster_due = time.monotonic() - last_roster_refresh >= roster_interval
            await refresh_once(registry, health, include_roster=roster_due)
            if roster_due:
                last_roster_refresh = time.monotonic()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Refresh loop unexpected error")
