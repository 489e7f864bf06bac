"""
=============================================================================
COMMAND LINE ENTRY POINT
=============================================================================

    python -m minihttp --directory /tmp/data
    minihttp --port 8080 --workers 16

Flags override MINIHTTP_* environment variables, which override defaults.

=============================================================================
"""

import argparse
import sys
from dataclasses import replace
from typing import Optional, Sequence

from . import __version__
from .config import LOG_FORMATS, ServerConfig
from .server import HTTPServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Small threaded HTTP/1.1 server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minihttp                          # 127.0.0.1:4221, files from .
  python -m minihttp --directory /tmp/data    # Serve /files/ from /tmp/data
  python -m minihttp --host 0.0.0.0 -p 8080   # All interfaces, port 8080
  python -m minihttp --log-format json        # JSON access log
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on, 0 for any free port (default: {defaults.port})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=defaults.timeout,
        help=f"Per-connection read timeout in seconds (default: {defaults.timeout})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        default=defaults.directory,
        help=f"Root directory for /files/ (default: {defaults.directory})",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.workers,
        help=f"Worker threads (default: {defaults.workers})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level})",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttp {__version__}",
    )

    return parser


def config_from_args(argv: Optional[Sequence[str]] = None) -> ServerConfig:
    """Environment-derived defaults, overridden by command-line flags."""
    defaults = ServerConfig.from_env()
    args = build_parser(defaults).parse_args(argv)

    return replace(
        defaults,
        host=args.host,
        port=args.port,
        timeout=args.timeout,
        directory=args.directory,
        workers=args.workers,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def main(argv: Optional[Sequence[str]] = None):
    try:
        config = config_from_args(argv)
        HTTPServer(config).run()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
