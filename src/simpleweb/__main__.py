"""
=============================================================================
SIMPLEWEB CLI ENTRY POINT
=============================================================================

    # Run with defaults (127.0.0.1:8080, static files from ./webroot)
    python -m simpleweb

    # Custom port and static root
    python -m simpleweb --port 3000 --static ./public

    # Listen on all interfaces, 20 workers, JSON access log
    python -m simpleweb --host 0.0.0.0 --workers 20 --log-format json

Settings are layered: defaults, then HTTP_* environment variables (see
ServerConfig.from_env), then command-line flags.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import OVERFLOW_POLICIES, ServerConfig
from .handlers import register_default_handlers
from .http import HandlerRegistry
from .server import HTTPServer


DEFAULT_STATIC_ROOT = "webroot"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="simpleweb",
        description="Minimal HTTP/1.1 server with /app handlers and static files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m simpleweb                        # Run with defaults
  python -m simpleweb --port 3000            # Custom port
  python -m simpleweb --static ./public      # Serve ./public
  python -m simpleweb --overflow block       # Queue full: wait, don't 503
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 8080)"
    )
    parser.add_argument(
        "--timeout", "-t",
        type=float,
        help="Per-read deadline on client sockets, in seconds (default: 30)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # WORKER POOL
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Number of worker threads (default: 10)"
    )
    parser.add_argument(
        "--queue-size",
        type=int,
        help="Connections allowed to wait for a worker (default: 100)"
    )
    parser.add_argument(
        "--overflow",
        choices=OVERFLOW_POLICIES,
        help="What to do when the queue is full (default: reject)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # ROUTING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--static", "-s",
        help=f"Static files directory (default: {DEFAULT_STATIC_ROOT})"
    )
    parser.add_argument(
        "--legacy-app-status",
        action="store_true",
        default=None,
        help="Answer unknown /app routes with 200 instead of 404"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"simpleweb {__version__}"
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment-based config with any given flags on top."""
    config = ServerConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "timeout": args.timeout,
        "workers": args.workers,
        "queue_size": args.queue_size,
        "overflow": args.overflow,
        "static_dir": args.static,
        "legacy_app_status": args.legacy_app_status,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    if not config.static_dir:
        config.static_dir = DEFAULT_STATIC_ROOT
    return config


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)

        # Startup routine: everything is registered before the accept loop
        registry = HandlerRegistry()
        registry.set_static_root(config.static_dir)
        register_default_handlers(registry)

        server = HTTPServer(config, registry)
        server.run()
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
