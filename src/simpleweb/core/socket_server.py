"""
=============================================================================
SOCKET SERVER
=============================================================================

The listening endpoint: socket creation, bind, listen, and the accept loop.

=============================================================================
THE SERVER SOCKET LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   socket()   → create a TCP socket                                  │
    │   setsockopt → SO_REUSEADDR, TCP_NODELAY                            │
    │   bind()     → claim host:port (port 0 = let the OS pick)           │
    │   listen()   → start queueing incoming connections                  │
    │                                                                      │
    │   ┌─────────────── accept loop ───────────────┐                     │
    │   │  accept()  → wait up to 1s for a client   │                     │
    │   │  Connection(client_socket, address)       │                     │
    │   │  connection_handler(conn) → worker pool   │                     │
    │   │  check _running, loop                     │                     │
    │   └───────────────────────────────────────────┘                     │
    │                                                                      │
    │   close()    → release the port                                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

accept() is given a 1-second timeout so the loop notices shutdown() within
a second, even when no client ever connects.

SO_REUSEADDR lets a restarted server bind immediately, while old
connections from the previous run are still in TIME_WAIT.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)   # Blocks until shutdown()

    From another thread (tests):
        threading.Thread(target=server.start, args=(handler,)).start()
        server.wait_until_ready(timeout=5)
        host, port = server.server_address
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, timeout, ...).

        The socket is not created until start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._bound_address: Optional[Tuple[str, int]] = None

        self._ready_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def server_address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        Before start() binds, this is the configured address; with port 0
        the real port is only known afterwards.
        """
        return self._bound_address or (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind right after a restart
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Responses are written in one sendall(); don't hold back small ones
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up every second to check _running
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        """
        Install SIGINT/SIGTERM handlers that call shutdown().

        Python only allows signal handlers on the main thread. When the
        server runs on another thread (tests, embedding) this is skipped and
        the owner calls shutdown() itself.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop.

        This method BLOCKS until shutdown() is called.

        Args:
            connection_handler: Called on the accept thread with each new
                                Connection. It must hand the connection off
                                quickly (HTTPServer submits it to the pool).

        Raises:
            OSError: If the address cannot be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        self._running = True
        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
            )

            try:
                connection_handler(conn)
            except Exception:
                # The accept loop outlives any single connection
                logger.exception(f"[{conn.id}] Connection handler failed")
                conn.close()

    def shutdown(self):
        """
        Ask the accept loop to stop. Idempotent and safe from any thread,
        including a signal handler.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the socket is listening.

        Returns:
            True once the server accepts connections, False on timeout.
        """
        return self._ready_event.wait(timeout)
