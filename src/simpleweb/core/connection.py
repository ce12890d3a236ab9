"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the reads and writes the request
pipeline needs.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP only guarantees that bytes arrive in order and intact. It does NOT
preserve the boundaries of what the client sent:

    Client sends:
        "GET /style.css HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n"

    Server might receive:
        recv() → "GET /sty"
        recv() → "le.css HTTP/1.1\\r\\nHo"
        recv() → "st: x\\r\\n\\r\\n"

So every read goes through ``_buffer``: bytes are pulled from the socket
until the caller's delimiter (a newline) or length is satisfied, and the
rest stays buffered for the next call.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   socket ──recv()──► _buffer ──readline()──► "GET / HTTP/1.1"       │
    │                         │                                            │
    │                         └────read_exact(n)──► body bytes            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ONE REQUEST, THEN CLOSE
=============================================================================

There is no keep-alive. The owning worker reads one request, writes one
response and closes, on every exit path:

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSING ──► CLOSED
              │                                       ▲
              └──────────── error / timeout ──────────┘

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..errors import MalformedRequestLine, RequestTimeout


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging and close()."""
    NEW = "new"                # Just accepted
    READING = "reading"        # Reading the request
    PROCESSING = "processing"  # Router is running
    WRITING = "writing"        # Sending the response
    CLOSING = "closing"        # Shutdown sequence
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    A single client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        timeout: Per-read deadline in seconds. None means blocking forever.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    bytes_sent: int = 0

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        if isinstance(self.address, tuple) and self.address:
            return str(self.address[0])
        return str(self.address or "-")

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    @property
    def has_buffered_data(self) -> bool:
        return bool(self._buffer)

    def take_buffered(self) -> bytes:
        """Return and clear whatever has been received but not yet read."""
        data, self._buffer = self._buffer, b""
        return data

    def set_timeout(self, timeout: Optional[float]):
        """Change the per-read deadline for the following reads."""
        self.timeout = timeout
        self.socket.settimeout(timeout)

    # =========================================================================
    # READING
    # =========================================================================

    def readline(self, max_length: int = 8192) -> Optional[bytes]:
        """
        Read one line, without its terminator.

        Both "\\r\\n" and a bare "\\n" end a line. If the peer closes
        mid-line, the partial line is returned.

        Args:
            max_length: Longest line accepted, terminator excluded.

        Returns:
            The line bytes, or None if the stream ended with nothing
            buffered.

        Raises:
            MalformedRequestLine: If the line is longer than max_length.
            RequestTimeout: If the read deadline passes.
        """
        self.state = ConnectionState.READING

        while b"\n" not in self._buffer:
            if len(self._buffer) > max_length:
                raise MalformedRequestLine(f"Line longer than {max_length} bytes")
            chunk = self._recv()
            if not chunk:
                if not self._buffer:
                    return None
                self._buffer += b"\n"
                break
            self._buffer += chunk

        line, _, self._buffer = self._buffer.partition(b"\n")
        if line.endswith(b"\r"):
            line = line[:-1]
        if len(line) > max_length:
            raise MalformedRequestLine(f"Line longer than {max_length} bytes")
        return line

    def read_exact(self, length: int) -> bytes:
        """
        Read ``length`` bytes.

        Fewer bytes are returned only when the peer closed the stream
        first; callers compare the length to detect a short read.

        Raises:
            RequestTimeout: If the read deadline passes.
        """
        self.state = ConnectionState.READING

        while len(self._buffer) < length:
            chunk = self._recv()
            if not chunk:
                break
            self._buffer += chunk

        data, self._buffer = self._buffer[:length], self._buffer[length:]
        return data

    def _recv(self) -> bytes:
        """
        Receive from the socket.

        Returns:
            Received bytes, or b"" if the connection was closed or reset.
        """
        try:
            return self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise RequestTimeout(f"No data within {self.timeout}s")
        except (ConnectionResetError, BrokenPipeError):
            # Client went away
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send a full response with sendall().

        Returns:
            True if the send succeeded, False if the connection was lost.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
            self.bytes_sent += len(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR) sends FIN so the client sees end-of-body.
        2. Unread request bytes are drained for up to half a second, so the
           kernel does not answer them with RST and cut the response short.
        3. close() releases the descriptor.

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(0.5)
            deadline = time.time() + 0.5
            while time.time() < deadline and self.socket.recv(1024):
                pass
        except OSError:
            pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allows ``with conn:`` so the socket is closed on every exit path:

            with conn:
                head = scanner.scan(conn)
                conn.send_response(data)
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
