"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds the responses this server writes back before closing a connection.

=============================================================================
WIRE FORMAT
=============================================================================

Every response is a status line, a few headers, a blank line and the body:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                   ← status line              │
    │    Content-type: text/css\r\n            ← what the body is         │
    │    Content-length: 1234\r\n              ← exact body size in bytes │
    │    \r\n                                  ← end of headers           │
    │    body { color: #333; } ...             ← raw body bytes           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Header names keep the "Content-type" / "Content-length" spelling existing
clients of this server were written against. HTTP header names are
case-insensitive, so standard clients read them either way.

There is no chunked encoding and no keep-alive: the connection is closed
right after the body, so Content-length is always known up front.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Union

from .status_codes import HTTPStatus


TEXT_PLAIN = "text/plain; charset=utf-8"
TEXT_HTML = "text/html; charset=utf-8"

NOT_FOUND_PAGE = "<html><body><h1>File Not Found</h1></body></html>"
FORBIDDEN_PAGE = "<html><body><h1>Forbidden</h1></body></html>"


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    Use ResponseBuilder or the helper functions at the bottom of this
    module rather than filling the fields by hand.

        Router returns           to_bytes()              Connection sends
        HTTPResponse    ─────►   serializes    ─────►    raw bytes
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line, e.g. "HTTP/1.1 200 OK".
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-type", "")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def to_bytes(self) -> bytes:
        """
        Serialize the response to bytes for socket.sendall().

        Content-length is filled in from the body unless a header already
        carries it.
        """
        response_headers = dict(self.headers)
        if "Content-length" not in response_headers:
            response_headers["Content-length"] = str(len(self.body))

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.NOT_FOUND)
            .html(NOT_FOUND_PAGE, content_type="text/html")
            .build())

    Each method returns ``self`` except build().
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """
        Set the raw response body.

        Strings are encoded as UTF-8.
        """
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def text(self, text: str, content_type: str = TEXT_PLAIN) -> "ResponseBuilder":
        """Set a plain text body."""
        self._body = text.encode("utf-8")
        return self.content_type(content_type)

    def html(self, html: str, content_type: str = TEXT_HTML) -> "ResponseBuilder":
        """Set an HTML body."""
        self._body = html.encode("utf-8")
        return self.content_type(content_type)

    def file(self, content: bytes, content_type: str) -> "ResponseBuilder":
        """
        Set a file body with an explicit Content-length.

        The length header is written here, next to the bytes it describes,
        so the two can never disagree.
        """
        self._body = content
        return (self
            .content_type(content_type)
            .header("Content-length", str(len(content))))

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok_text(text: str) -> HTTPResponse:
    """200 OK with a plain text body (the /app handler result)."""
    return ResponseBuilder().status(HTTPStatus.OK).text(text).build()


def text_response(status: HTTPStatus, text: str) -> HTTPResponse:
    """Any status with a plain text body."""
    return ResponseBuilder().status(status).text(text).build()


def not_found_page() -> HTTPResponse:
    """404 with the fixed HTML page for missing static files."""
    return (ResponseBuilder()
        .status(HTTPStatus.NOT_FOUND)
        .html(NOT_FOUND_PAGE, content_type="text/html")
        .build())


def forbidden_page() -> HTTPResponse:
    """403 for static paths that resolve outside the root."""
    return (ResponseBuilder()
        .status(HTTPStatus.FORBIDDEN)
        .html(FORBIDDEN_PAGE, content_type="text/html")
        .build())


def method_not_allowed(allowed: Iterable[str]) -> HTTPResponse:
    """
    405 Method Not Allowed.

    The Allow header is required by RFC 7231 for 405 responses.
    """
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed))
        .text("Error: Method Not Allowed")
        .build())


def error_response(status: HTTPStatus) -> HTTPResponse:
    """
    Plain text error body built only from the reason phrase.

    Used at the worker boundary, where nothing about the failure (paths,
    exception text) may leak to the client.
    """
    return text_response(status, f"Error: {status.phrase}")
