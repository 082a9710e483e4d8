"""Command-line entry for hallcoordinator."""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from . import run_server


def _create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hallcoordinator",
        description="Hall Coordinator - live session dashboard server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m hallcoordinator                    # Start server on default port (8080)
  python -m hallcoordinator --port 3000        # Start server on port 3000
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8080, or from HALLCOORD_WEB_PORT env var)",
    )

    return parser


def main() -> NoReturn:
    """Run the hallcoordinator CLI."""
    parser = _create_parser()
    args = parser.parse_args()

    try:
        run_server(args)
    except ValueError as exc:
        print(f"hallcoordinator: {exc}", file=sys.stderr)
        sys.exit(2)
    sys.exit(0)


if __name__ == "__main__":
    main()
