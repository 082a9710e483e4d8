"""Central logging configuration for the hall coordinator.

Console output goes through colorlog; every record carries the request
correlation id so a coordinator's write and the refetch it triggers can be
followed in the logs.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

CONSOLE_FORMAT = (
    "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s [%(request_id)s] %(name)s: %(message)s"
)

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

# Third-party loggers that are too chatty at DEBUG
QUIET_LOGGERS: dict[str, int] = {
    "aiohttp.access": logging.WARNING,
    "aiohttp.server": logging.WARNING,
    "aiohttp.web": logging.INFO,
    "aiohttp.web_log": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
}


class CorrelationIdFilter(logging.Filter):
    """Add the request correlation ID to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        from .middleware import get_request_id

        record.request_id = get_request_id()
        return True


def _truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def configure_logging(debug_mode: bool = False, level_name: Optional[str] = None) -> None:
    """Configure console logging for the hall coordinator.

    Args:
        debug_mode: Enable DEBUG for hallcoordinator modules
        level_name: Root level override (DEBUG, INFO, WARNING, ERROR)

    Environment Variables:
        HALLCOORD_DEBUG: truthy value forces debug logging
        HALLCOORD_LOG_LEVEL: root log level when ``level_name`` is not given
    """
    final_debug = debug_mode or _truthy(os.environ.get("HALLCOORD_DEBUG"))
    requested = (level_name or os.environ.get("HALLCOORD_LOG_LEVEL", "")).upper()

    root_level = logging.DEBUG if final_debug else logging.INFO
    if requested in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, requested)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    correlation_filter = CorrelationIdFilter()

    if not root_logger.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(
            ColoredFormatter(CONSOLE_FORMAT, datefmt="%H:%M:%S", log_colors=LOG_COLORS)
        )
        root_logger.addHandler(handler)

    for handler in root_logger.handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.addFilter(correlation_filter)

    for logger_name, level in QUIET_LOGGERS.items():
        logging.getLogger(logger_name).setLevel(level)

    logging.getLogger("hallcoordinator").setLevel(logging.DEBUG if final_debug else root_level)

    root_logger.debug("Logging configured at %s (debug=%s)", logging.getLevelName(root_level), final_debug)


def get_logging_status() -> dict[str, str]:
    """Current levels of the root and key loggers."""
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ("hallcoordinator", "aiohttp.access", "httpx", "asyncio"):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
