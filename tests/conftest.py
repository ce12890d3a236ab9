"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator, Tuple
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from simpleweb import HTTPServer, ServerConfig
from simpleweb.core import Connection
from simpleweb.handlers import register_default_handlers
from simpleweb.http import HandlerRegistry


STYLE_CSS = b"body { color: #333; }\nh1 { font-size: 2em; }\n"
INDEX_HTML = b"<html><body><h1>Index</h1></body></html>"


@pytest.fixture
def static_root(tmp_path: Path) -> Path:
    """A static root with a couple of files and a subdirectory."""
    root = tmp_path / "webroot"
    root.mkdir()
    (root / "style.css").write_bytes(STYLE_CSS)
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "notes.md").write_bytes(b"# notes")
    (root / "sub").mkdir()
    (root / "sub" / "app.js").write_bytes(b"console.log('hi');")

    # Sibling of the root, must never be reachable
    (tmp_path / "secret.txt").write_bytes(b"top secret")
    return root


@pytest.fixture
def registry(static_root: Path) -> HandlerRegistry:
    """Registry with the demo handlers and the test static root."""
    registry = HandlerRegistry()
    registry.set_static_root(str(static_root))
    register_default_handlers(registry)
    return registry


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        workers=4,
        queue_size=50,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def conn_pair() -> Generator[Tuple[Connection, socket.socket], None, None]:
    """
    A Connection wired to a local peer socket.

    Write request bytes to the peer, read them back through the Connection.
    """
    server_side, client_side = socket.socketpair()
    conn = Connection(socket=server_side, address=("127.0.0.1", 50000), timeout=2.0)

    yield conn, client_side

    conn.close()
    client_side.close()


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.server_address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server and wait for run() to return."""
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    @property
    def stopped(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw request bytes and read until the server closes."""
        return send_raw(self.port, raw, timeout)


def send_raw(port: int, raw: bytes, timeout: float = 5.0) -> bytes:
    """Open a connection, send ``raw``, return everything the server sends back."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        s.sendall(raw)
        s.shutdown(socket.SHUT_WR)
        chunks = []
        while True:
            chunk = s.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(data: bytes) -> Tuple[str, dict, bytes]:
    """Split raw response bytes into (status line, headers, body)."""
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return lines[0], headers, body


@pytest.fixture
def test_server(config: ServerConfig, registry: HandlerRegistry) -> Generator[TestServer, None, None]:
    """A running server with the demo handlers and the test static root."""
    test_srv = TestServer(HTTPServer(config, registry))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def parse_response():
    """The split_response helper, for tests that read raw responses."""
    return split_response
