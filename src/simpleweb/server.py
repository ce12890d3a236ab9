"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together: socket server, worker pool, scanner, router,
access log.

=============================================================================
ONE CONNECTION, END TO END
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │  accept thread                                                      │
    │     SocketServer.accept() ──► _handle_connection(conn)              │
    │                                  │                                   │
    │                                  ├── pool.submit() ok ──► queued    │
    │                                  └── queue full ──► 503, close      │
    │                                                                      │
    │  worker thread                                                      │
    │     _process_connection(conn)                                       │
    │        with conn:                    ← closed on EVERY exit path    │
    │           head = scanner.scan(conn)                                 │
    │           response = router.dispatch(head, conn)                    │
    │           conn.send_response(response.to_bytes())                   │
    │           access_log.log(...)                                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ERROR BOUNDARY
=============================================================================

The worker is where errors stop. Nothing raised for one connection reaches
the pool, the accept loop, or another connection:

    ServerError subclass  → "Error: <reason phrase>" with its status code
    ConnectionClosed      → close silently, nobody is listening
    OSError               → log, close
    anything else         → log with traceback, 500 if still possible

Exception text and file paths never go on the wire.

=============================================================================
"""

import logging
from typing import Optional

from .access_log import AccessLogger
from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .errors import ConnectionClosed, ServerError
from .handlers import StaticFileResolver, register_default_handlers
from .http import (
    HandlerRegistry, RequestScanner, RequestHead, Router,
    HTTPResponse, HTTPStatus, error_response,
)


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Minimal HTTP/1.1 server: one request per connection.

    Usage:
        registry = HandlerRegistry()
        registry.set_static_root("webroot")
        registry.register("/hello", HelloHandler())

        server = HTTPServer(ServerConfig(port=8080), registry)
        server.run()          # Blocks until Ctrl+C or stop()

    The registry must be fully configured before run(): run() seals it, and
    later register() calls raise RegistrySealedError.
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        registry: Optional[HandlerRegistry] = None,
    ):
        """
        Args:
            config: Server configuration. Defaults are used if not provided.
            registry: Handlers and static root. An empty registry serves
                      static files from the current directory.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail fast on invalid config

        self.registry = registry or HandlerRegistry()
        if self.config.static_dir and not self.registry.static_root:
            self.registry.set_static_root(self.config.static_dir)

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            workers=self.config.workers,
            queue_size=self.config.queue_size,
            overflow=self.config.overflow,
            queue_timeout=self.config.queue_timeout,
        )

        self._scanner = RequestScanner(
            max_header_lines=self.config.max_header_lines,
            max_line_length=self.config.max_line_length,
        )
        self._router = Router(
            self.registry,
            StaticFileResolver(self.registry, index_file=self.config.index_file),
            self.config,
        )
        self._access_log = AccessLogger(log_format=self.config.log_format)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def server_address(self):
        """Bound (host, port); the real port once run() has bound it."""
        return self._socket_server.server_address

    @property
    def stats(self) -> dict:
        return self._thread_pool.stats

    def run(self):
        """
        Start the server (blocking).

        Returns after stop() or SIGINT/SIGTERM, once in-flight
        connections have finished.
        """
        self._setup_logging()
        self.registry.seal()

        self._thread_pool.start()

        logger.info(
            f"Serving static files from {self.registry.static_root or '.'}; "
            f"/app handlers: {', '.join(self.registry.prefixes()) or 'none'}"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self):
        """
        Stop accepting connections. Safe to call from any thread.

        Connections already accepted still run to completion; run() returns
        once they have.
        """
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is bound."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # basicConfig is a no-op if the application already configured logging
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("simpleweb").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Queue a connection for a worker (runs on the accept thread).

        If the queue is full, the client gets 503 right away.
        """
        submitted = self._thread_pool.submit(self._process_connection, args=(conn,))

        if not submitted:
            logger.warning(f"[{conn.id}] Worker queue full, rejecting connection")
            with conn:
                self._send(conn, error_response(HTTPStatus.SERVICE_UNAVAILABLE))

    def _process_connection(self, conn: Connection):
        """
        Run one connection through the pipeline (runs on a worker thread).
        """
        head: Optional[RequestHead] = None
        response: Optional[HTTPResponse] = None

        with conn:
            try:
                head = self._scanner.scan(conn)
                response = self._router.dispatch(head, conn)

            except ConnectionClosed:
                logger.debug(f"[{conn.id}] Closed by peer before a request")
                return

            except ServerError as e:
                logger.warning(f"[{conn.id}] {type(e).__name__}: {e}")
                response = error_response(HTTPStatus.from_code(e.status_code))

            except OSError as e:
                logger.warning(f"[{conn.id}] Connection error: {e}")
                return

            except Exception as e:
                logger.exception(f"[{conn.id}] Unexpected error: {e}")
                response = error_response(HTTPStatus.INTERNAL_SERVER_ERROR)

            if self._send(conn, response):
                self._access_log.log(conn, head, response)

    def _send(self, conn: Connection, response: HTTPResponse) -> bool:
        return conn.send_response(response.to_bytes())


def create_app(
    config: Optional[ServerConfig] = None,
    registry: Optional[HandlerRegistry] = None,
) -> HTTPServer:
    """
    Create a server with the demo /hello and /echo handlers registered.

    Example:
        app = create_app(ServerConfig(port=3000, static_dir="webroot"))
        app.run()
    """
    registry = registry or HandlerRegistry()
    register_default_handlers(registry)
    return HTTPServer(config, registry)
