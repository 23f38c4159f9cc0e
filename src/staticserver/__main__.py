"""
=============================================================================
STATIC SERVER CLI ENTRY POINT
=============================================================================

Command-line interface for serving a directory.

=============================================================================
USAGE
=============================================================================

    # Serve the current directory on port 8000
    python -m staticserver

    # Serve ./public on port 3000
    python -m staticserver ./public 3000

    # Only listen locally, cache images for an hour
    python -m staticserver ./public --host 127.0.0.1 --max-age 3600

    # One JSON object per access log line
    python -m staticserver ./public --log-format json

Environment variables (STATIC_ROOT, STATIC_PORT, ...) supply the defaults;
arguments given on the command line win.

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Serve a directory over HTTP with ranges, caching and compression",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m staticserver                       # cwd on port 8000
  python -m staticserver ./public 3000         # ./public on port 3000
  python -m staticserver --host 127.0.0.1      # local only
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # WHAT TO SERVE, WHERE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "root",
        nargs="?",
        default=None,
        help="Directory to serve (default: $STATIC_ROOT or the current directory)"
    )

    parser.add_argument(
        "port",
        nargs="?",
        type=int,
        default=None,
        help="Port to listen on (default: $STATIC_PORT or 8000)"
    )

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Address to bind to (default: 0.0.0.0)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # BEHAVIOUR
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--max-age",
        type=int,
        default=None,
        help="Cache lifetime in seconds for gif/png/jpg/css/js (default: 86400)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"staticserver {__version__}"
    )

    return parser


def build_config(argv: Optional[Sequence[str]] = None) -> ServerConfig:
    """
    Environment first, then command-line overrides.

    Args:
        argv: Arguments without the program name (default: sys.argv[1:]).
    """
    args = build_parser().parse_args(argv)
    config = ServerConfig.from_env()

    if args.root is not None:
        config.root_dir = args.root
    if args.port is not None:
        config.port = args.port
    if args.host is not None:
        config.host = args.host
    if args.max_age is not None:
        config.cache_max_age = args.max_age
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point. Blocks until Ctrl+C."""
    try:
        server = HTTPServer(build_config(argv))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
