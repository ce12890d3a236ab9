"""
=============================================================================
REQUEST-HEAD SCANNER
=============================================================================

Reads the request line and header lines of one request from a Connection.

=============================================================================
WHAT GETS READ
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  POST /app/echo HTTP/1.1\\r\\n          ← request line (required)     │
    │  Host: localhost:8080\\r\\n             ← header lines               │
    │  Content-Length: 27\\r\\n                                             │
    │  \\r\\n                                 ← blank line: stop here       │
    │  {"text": "Hello, Server!"}           ← body: left on the socket    │
    └─────────────────────────────────────────────────────────────────────┘

The body is NOT read here. Only the Router knows whether the matched
handler wants it, so it stays buffered in the Connection.

Scanning stops at the first of:

    - a blank line
    - end of stream
    - the header-line limit             → HeaderTooLarge (431)
    - the connection's read deadline    → RequestTimeout (408)

A lone "\\n" is accepted as a line terminator as well as "\\r\\n".

=============================================================================
TOLERANT REQUEST LINE
=============================================================================

The request line is split on single spaces. Only the method and target are
required. The version defaults to HTTP/1.0 and is not validated:

    "GET /"                 → GET, "/", "HTTP/1.0"
    "GET / HTTP/1.1"        → GET, "/", "HTTP/1.1"
    "GET"                   → MalformedRequestLine (400)

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple

from ..core.connection import Connection, ConnectionState
from ..errors import ConnectionClosed, HeaderTooLarge, MalformedRequestLine


logger = logging.getLogger(__name__)


DEFAULT_VERSION = "HTTP/1.0"


class Method(Enum):
    """The methods the Router tells apart. Everything else is OTHER."""

    GET = "GET"
    POST = "POST"
    OTHER = "OTHER"

    @classmethod
    def from_token(cls, token: str) -> "Method":
        if token == "GET":
            return cls.GET
        if token == "POST":
            return cls.POST
        return cls.OTHER


@dataclass(frozen=True)
class RequestHead:
    """
    A parsed request line plus its raw header lines.

    Attributes:
        method: GET, POST or OTHER.
        method_name: The method token exactly as sent ("PUT", "get", ...).
        target: Path plus optional query string.
        version: Version token, "HTTP/1.0" when absent.
        raw_header_lines: Header lines in arrival order, undecoded.
    """

    method: Method
    method_name: str
    target: str
    version: str = DEFAULT_VERSION
    raw_header_lines: Tuple[str, ...] = ()

    _headers: Dict[str, str] = field(default_factory=dict, init=False, repr=False, compare=False)

    @property
    def request_line(self) -> str:
        return f"{self.method_name} {self.target} {self.version}"

    @property
    def path(self) -> str:
        """Target without the query string."""
        return self.target.split("?", 1)[0]

    @property
    def query_string(self) -> str:
        """Everything after the first "?", or ""."""
        _, _, query = self.target.partition("?")
        return query

    @property
    def headers(self) -> Dict[str, str]:
        """
        Header dictionary with lower-cased names.

        Duplicate names keep their FIRST value. Lines without a colon are
        ignored. Built once on first access.
        """
        if not self._headers and self.raw_header_lines:
            for line in self.raw_header_lines:
                name, sep, value = line.partition(":")
                if not sep:
                    continue
                self._headers.setdefault(name.strip().lower(), value.strip())
        return self._headers

    def get_header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    @property
    def content_length(self) -> int:
        """
        Content-Length as an int.

        Returns 0 if the header is missing, not a number, or negative.
        """
        try:
            length = int(self.headers.get("content-length", 0))
        except ValueError:
            return 0
        return max(length, 0)

    @property
    def has_content_length(self) -> bool:
        return "content-length" in self.headers


class RequestScanner:
    """
    Reads one RequestHead from a Connection.

    Usage:
        scanner = RequestScanner(max_header_lines=100, max_line_length=8192)
        head = scanner.scan(conn)

    The scanner holds no per-request state, so one instance is shared by
    every worker.
    """

    def __init__(self, max_header_lines: int = 100, max_line_length: int = 8192):
        self.max_header_lines = max_header_lines
        self.max_line_length = max_line_length

    def scan(self, conn: Connection) -> RequestHead:
        """
        Read the request line and header lines.

        Raises:
            ConnectionClosed: The peer closed without sending anything.
            MalformedRequestLine: Fewer than two tokens, an empty method or
                                  target, or a line over max_line_length.
            HeaderTooLarge: More than max_header_lines header lines.
            RequestTimeout: The read deadline passed.
        """
        # ─────────────────────────────────────────────────────────────────
        # REQUEST LINE
        # ─────────────────────────────────────────────────────────────────
        raw = conn.readline(self.max_line_length)
        if raw is None:
            raise ConnectionClosed("Peer closed before sending a request line")

        request_line = raw.decode("latin-1")
        method_name, target, version = parse_request_line(request_line)

        logger.info(f"[{conn.id}] {request_line}")

        # ─────────────────────────────────────────────────────────────────
        # HEADER LINES
        # ─────────────────────────────────────────────────────────────────
        header_lines = []
        while True:
            raw = conn.readline(self.max_line_length)
            if raw is None or raw == b"":
                break
            if len(header_lines) >= self.max_header_lines:
                raise HeaderTooLarge(f"More than {self.max_header_lines} header lines")
            line = raw.decode("latin-1")
            logger.debug(f"[{conn.id}] {line}")
            header_lines.append(line)

        conn.state = ConnectionState.PROCESSING

        return RequestHead(
            method=Method.from_token(method_name),
            method_name=method_name,
            target=target,
            version=version,
            raw_header_lines=tuple(header_lines),
        )


def parse_request_line(line: str) -> Tuple[str, str, str]:
    """
    Split a request line into (method, target, version).

        >>> parse_request_line("GET /index.html HTTP/1.1")
        ('GET', '/index.html', 'HTTP/1.1')
        >>> parse_request_line("GET /")
        ('GET', '/', 'HTTP/1.0')

    Raises:
        MalformedRequestLine: Fewer than two tokens, or an empty method
                              or target.
    """
    tokens = line.split(" ")
    if len(tokens) < 2 or not tokens[0] or not tokens[1]:
        raise MalformedRequestLine(f"Malformed request line: {line!r}")
    version = tokens[2] if len(tokens) > 2 and tokens[2] else DEFAULT_VERSION
    return tokens[0], tokens[1], version
