"""Configuration management for the hall coordinator server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 10
DEFAULT_ROSTER_REFRESH_INTERVAL_SECONDS = 300
DEFAULT_SERVER_BIND = "0.0.0.0"  # nosec: B104
DEFAULT_SERVER_PORT = 8080


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return result

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")
        if key:
            result[key] = val

    return result


def _int_env(name: str, minimum: int = 0) -> int | None:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid %s=%r; ignoring", name, raw)
        return None
    if value < minimum:
        logger.warning("%s=%d below minimum %d; ignoring", name, value, minimum)
        return None
    return value


def _float_env(name: str) -> float | None:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid %s=%r; ignoring", name, raw)
        return None
    return value if value > 0 else None


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []
        for key, val in parse_env_file(self.env_file_path).items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - HALLCOORD_SUPABASE_URL -> 'supabase_url'
        - HALLCOORD_SUPABASE_KEY -> 'supabase_key'
        - HALLCOORD_FIXTURES_PATH -> 'fixtures_path'
        - HALLCOORD_POLL_INTERVAL -> 'poll_interval_seconds' (int)
        - HALLCOORD_ROSTER_REFRESH_INTERVAL -> 'roster_refresh_interval_seconds' (int)
        - HALLCOORD_WEB_HOST -> 'server_bind'
        - HALLCOORD_WEB_PORT -> 'server_port' (int)
        - HALLCOORD_TIMEZONE -> 'event_timezone'
        - HALLCOORD_REQUEST_TIMEOUT -> 'request_timeout' (float seconds)
        - HALLCOORD_CONTROL_CONTACTS -> 'control_contacts' (raw JSON list)
        - HALLCOORD_LOG_LEVEL -> 'log_level'
        - HALLCOORD_DEBUG -> 'debug_logging' (bool)

        Returns:
            Configuration dictionary compatible with start_server
        """
        cfg: dict[str, Any] = {}

        for env_name, key in (
            ("HALLCOORD_SUPABASE_URL", "supabase_url"),
            ("HALLCOORD_SUPABASE_KEY", "supabase_key"),
            ("HALLCOORD_FIXTURES_PATH", "fixtures_path"),
            ("HALLCOORD_WEB_HOST", "server_bind"),
            ("HALLCOORD_TIMEZONE", "event_timezone"),
            ("HALLCOORD_CONTROL_CONTACTS", "control_contacts"),
        ):
            value = os.environ.get(env_name)
            if value:
                cfg[key] = value

        poll = _int_env("HALLCOORD_POLL_INTERVAL", minimum=1)
        if poll is not None:
            cfg["poll_interval_seconds"] = poll

        roster_refresh = _int_env("HALLCOORD_ROSTER_REFRESH_INTERVAL", minimum=1)
        if roster_refresh is not None:
            cfg["roster_refresh_interval_seconds"] = roster_refresh

        port = _int_env("HALLCOORD_WEB_PORT", minimum=1)
        if port is not None:
            cfg["server_port"] = port

        timeout = _float_env("HALLCOORD_REQUEST_TIMEOUT")
        if timeout is not None:
            cfg["request_timeout"] = timeout

        log_level = os.environ.get("HALLCOORD_LOG_LEVEL", "").upper()
        if log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
            cfg["log_level"] = log_level

        if os.environ.get("HALLCOORD_DEBUG", "").lower() in ("1", "true", "yes", "on"):
            cfg["debug_logging"] = True

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file, then build configuration from the environment."""
        self.load_env_file()
        return self.build_config_from_env()


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Get configuration value supporting both dict and attribute-style objects."""
    if isinstance(config, dict):
        return config.get(key, default)
    return getattr(config, key, default)
