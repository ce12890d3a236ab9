"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the server process.

=============================================================================
WHAT IS CONFIGURED HERE (AND WHAT IS NOT)
=============================================================================

ServerConfig holds the PROCESS settings: where to listen, how many workers,
how long to wait on slow clients, how much input to accept. These can come
from code, from the command line, or from the environment.

Routes and the static-files root are NOT configured here. They are set by
the startup routine on a HandlerRegistry before the accept loop starts:

    registry = HandlerRegistry()
    registry.set_static_root("webroot")
    registry.register("/hello", HelloHandler())

    server = HTTPServer(ServerConfig(port=8080), registry)

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m simpleweb --port 3000                           │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 python -m simpleweb                        │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


OVERFLOW_POLICIES = ("block", "reject")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    WORKER POOL
    - workers, queue_size, overflow, queue_timeout

    REQUEST LIMITS
    - max_header_lines, max_line_length, max_body_size

    ROUTING
    - static_dir, index_file, legacy_app_status

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces (containers)
    """

    port: int = 8080
    """
    The port number to listen on. 0 lets the OS pick a free port.
    """

    backlog: int = 128
    """
    Maximum number of connections the OS queues before refusing new ones.
    """

    buffer_size: int = 8192
    """
    How many bytes a single recv() call asks for.
    """

    timeout: Optional[float] = 30.0
    """
    Read deadline in seconds for every client socket.
    None = block forever (a slow client can then hold a worker indefinitely).
    """

    # ─────────────────────────────────────────────────────────────────────
    # WORKER POOL
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 10
    """
    Number of worker threads. Each worker owns one connection at a time.
    """

    queue_size: int = 100
    """
    Maximum number of accepted connections waiting for a free worker.
    """

    overflow: str = "reject"
    """
    What the accept loop does when the queue is full.
    - "reject" - answer 503 Service Unavailable and close
    - "block"  - wait up to queue_timeout for a slot, then reject
    """

    queue_timeout: Optional[float] = 5.0
    """
    How long the accept loop waits for a queue slot under "block".
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_header_lines: int = 100
    """
    Maximum number of header lines after the request line.
    """

    max_line_length: int = 8192
    """
    Maximum length in bytes of the request line or of any header line.
    """

    max_body_size: int = 1024 * 1024  # 1 MB
    """
    Maximum request body the router will read for /app handlers and POST echo.
    """

    # ─────────────────────────────────────────────────────────────────────
    # ROUTING
    # ─────────────────────────────────────────────────────────────────────

    static_dir: Optional[str] = None
    """
    Static-files root used by the CLI when building the registry.
    """

    index_file: Optional[str] = None
    """
    File served for directory requests (e.g. "index.html").
    None = directories are treated as not found.
    """

    legacy_app_status: bool = False
    """
    Answer unknown /app sub-routes with 200 OK (old clients expect it)
    instead of 404 Not Found. The body is the same either way.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    DEBUG also logs every header line of every request.
    """

    log_format: str = "text"
    """
    Access log format: 'text' (Apache style) or 'json'.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST        Server host (default: 127.0.0.1)
        HTTP_PORT        Server port (default: 8080)
        HTTP_WORKERS     Worker threads (default: 10)
        HTTP_QUEUE_SIZE  Pending-connection queue size (default: 100)
        HTTP_TIMEOUT     Read deadline in seconds (default: 30)
        HTTP_STATIC_DIR  Static files directory (default: None)
        HTTP_LOG_LEVEL   Logging level (default: INFO)
        HTTP_LOG_FORMAT  Access log format (default: text)

        =====================================================================
        """
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            workers=int(os.getenv("HTTP_WORKERS", "10")),
            queue_size=int(os.getenv("HTTP_QUEUE_SIZE", "100")),
            timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            static_dir=os.getenv("HTTP_STATIC_DIR"),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by HTTPServer at construction time so a bad value fails the
        process at startup, not on the first request.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.workers < 1:
            raise ValueError("workers must be >= 1")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.overflow not in OVERFLOW_POLICIES:
            raise ValueError(
                f"overflow must be one of {', '.join(OVERFLOW_POLICIES)}, got {self.overflow!r}"
            )

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_header_lines < 1:
            raise ValueError("max_header_lines must be >= 1")

        if self.max_line_length < 64:
            raise ValueError("max_line_length must be >= 64")

        if self.max_body_size < 0:
            raise ValueError("max_body_size must be >= 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")
