"""
=============================================================================
MOCKHTTP CLI ENTRY POINT
=============================================================================

    python -m mockhttp
    python -m mockhttp --port 3000
    python -m mockhttp --host 0.0.0.0 --workers 64
    python -m mockhttp --max-delay 10 --log-format json

    PORT=3000 mockhttp                  # console script, port from env

Configuration is read in three layers: defaults, then environment
variables (``ServerConfig.from_env``), then the flags given here.

=============================================================================
"""

import argparse
import sys
from dataclasses import replace

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig, resolve_port
from .server import MockHTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mockhttp",
        description="Diagnostic HTTP echo server for testing HTTP clients",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mockhttp                          # 127.0.0.1:8080, or $PORT
  mockhttp --port 3000              # Custom port
  mockhttp --host 0.0.0.0           # Listen on all interfaces
  mockhttp --max-delay 10           # Reject /delay/{seconds} above 10
  mockhttp --log-format json        # One JSON object per access line
        """
    )

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: $MOCKHTTP_HOST or 127.0.0.1)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: $PORT or 8080)"
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum worker threads (default: $MOCKHTTP_WORKERS or 32)"
    )
    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: $MOCKHTTP_LOG_LEVEL or INFO)"
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: text)"
    )
    parser.add_argument(
        "--max-delay",
        type=int,
        default=None,
        help="Largest accepted /delay/{seconds} (default: $MOCKHTTP_MAX_DELAY or unbounded)"
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"mockhttp {__version__}"
    )

    return parser


def build_config(args: argparse.Namespace, environ=None) -> ServerConfig:
    """Environment first, then whatever flags were given on top."""
    config = ServerConfig.from_env(environ)

    overrides = {"port": resolve_port(args.port, environ)}
    if args.host is not None:
        overrides["host"] = args.host
    if args.workers is not None:
        overrides["workers"] = args.workers
        overrides["min_workers"] = max(1, min(config.min_workers, args.workers))
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if args.log_format is not None:
        overrides["log_format"] = args.log_format
    if args.max_delay is not None:
        overrides["max_delay"] = args.max_delay

    return replace(config, **overrides)


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        server = MockHTTPServer(build_config(args))
        server.run()
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
