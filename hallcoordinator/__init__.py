"""hallcoordinator - live hall coordination engine for event programs.

Classifies a hall's sessions against the wall clock, pushes the remaining
agenda when the live session overruns, tracks coordinator status and
readiness checklists, and turns loosely written speaker text into contactable
people.
"""

__version__ = "0.1.0"

from typing import Optional


def run_server(args: Optional[object] = None) -> None:
    """Start the hall coordinator server.

    Loads configuration from ``.env`` and HALLCOORD_* environment variables,
    applies command line overrides, then blocks until shutdown.

    Args:
        args: Optional argparse namespace carrying ``port``
    """
    import logging

    from .logging_config import configure_logging
    from .server import _build_default_config_from_env, start_server

    configure_logging()
    logger = logging.getLogger(__name__)

    cfg = _build_default_config_from_env()

    port = getattr(args, "port", None) if args is not None else None
    if port is not None:
        cfg["server_port"] = int(port)
        logger.debug("Applied command line port override: %d", cfg["server_port"])

    logger.debug(
        "Resolved configuration (diagnostic): %s",
        {k: cfg.get(k) for k in ("server_bind", "server_port", "fixtures_path", "poll_interval_seconds")},
    )
    start_server(cfg)
