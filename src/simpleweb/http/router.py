"""
=============================================================================
REQUEST ROUTER
=============================================================================

Turns a RequestHead into an HTTPResponse. There are exactly three ways a
request can go:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   target starts with /app ?                                         │
    │        │                                                             │
    │       yes ──► registry.match(subpath)                               │
    │        │         ├── handler found ──► 200 text/plain, its string   │
    │        │         └── none ──────────► "Error: Método no soportado"  │
    │        no                                                            │
    │        │                                                             │
    │   method GET  ──► static file (200 / 403 / 404)                     │
    │   method POST ──► payload echoed back in a small HTML page          │
    │   anything else ──► 405 Method Not Allowed                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The /app branch does not look at the method: GET and POST both reach the
handler. The Router never names a route. What a handler receives is decided
by its ``consumes_body`` flag.

=============================================================================
"""

import logging
from typing import List

from ..config import ServerConfig
from ..core.connection import Connection
from ..errors import BodyReadError, PayloadTooLarge, RequestTimeout
from ..handlers.static import StaticFileResolver
from .registry import AppHandler, HandlerRegistry
from .request import Method, RequestHead
from .response import (
    HTTPResponse, ResponseBuilder, HTTPStatus,
    ok_text, text_response, method_not_allowed, error_response,
)


logger = logging.getLogger(__name__)


APP_PREFIX = "/app"
ALLOWED_METHODS = ("GET", "POST")

UNSUPPORTED_APP_ROUTE = "Error: Método no soportado"
BODY_READ_ERROR = "Error al procesar la solicitud"

POST_ECHO_TEMPLATE = (
    "<html><body><h1>POST data received:</h1>\n"
    "<p>{payload}</p>\n"
    "</body></html>"
)

# Read deadline for a POST body sent without Content-Length
UNDELIMITED_BODY_WAIT = 0.5


class Router:
    """
    Three-way dispatcher.

    Usage:
        router = Router(registry, StaticFileResolver(registry), config)
        response = router.dispatch(head, conn)

    The Router is shared by all workers and keeps no per-request state.
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        resolver: StaticFileResolver = None,
        config: ServerConfig = None,
    ):
        self.registry = registry
        self.config = config or ServerConfig()
        self.resolver = resolver or StaticFileResolver(registry, index_file=self.config.index_file)

    def dispatch(self, head: RequestHead, conn: Connection) -> HTTPResponse:
        """
        Produce the response for one request.

        Raises:
            PayloadTooLarge: Declared body over max_body_size.
            RequestTimeout: Body read hit the connection deadline.
        """
        if head.target.startswith(APP_PREFIX):
            return self._dispatch_app(head, conn)

        if head.method is Method.GET:
            return self.resolver.respond(head.target)

        if head.method is Method.POST:
            return self._echo_post(head, conn)

        logger.debug(f"[{conn.id}] Method not allowed: {head.method_name}")
        return method_not_allowed(ALLOWED_METHODS)

    # =========================================================================
    # /app HANDLERS
    # =========================================================================

    def _dispatch_app(self, head: RequestHead, conn: Connection) -> HTTPResponse:
        subpath = head.target[len(APP_PREFIX):]
        matched = self.registry.match(subpath)

        if matched is None:
            status = HTTPStatus.OK if self.config.legacy_app_status else HTTPStatus.NOT_FOUND
            return text_response(status, UNSUPPORTED_APP_ROUTE)

        prefix, handler = matched

        if handler.consumes_body:
            try:
                request = self._read_body(head, conn).decode("utf-8", errors="replace")
            except BodyReadError as e:
                logger.warning(f"[{conn.id}] {e}")
                return text_response(HTTPStatus.BAD_REQUEST, BODY_READ_ERROR)
        else:
            request = head.target

        return self._invoke(handler, prefix, request, conn)

    def _invoke(self, handler: AppHandler, prefix: str, request: str, conn: Connection) -> HTTPResponse:
        try:
            result = handler.handle(request, "")
        except Exception:
            logger.exception(f"[{conn.id}] Handler {handler.name} for {prefix} failed")
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)
        return ok_text(str(result))

    def _read_body(self, head: RequestHead, conn: Connection) -> bytes:
        """
        Read exactly Content-Length bytes.

        Raises:
            PayloadTooLarge: Content-Length above max_body_size.
            BodyReadError: The peer sent fewer bytes, or the read failed.
        """
        length = head.content_length
        if length > self.config.max_body_size:
            raise PayloadTooLarge(f"Body of {length} bytes exceeds {self.config.max_body_size}")
        if length == 0:
            return b""

        try:
            body = conn.read_exact(length)
        except OSError as e:
            raise BodyReadError(f"Body read failed: {e}") from e

        if len(body) < length:
            raise BodyReadError(f"Short body: got {len(body)} of {length} bytes")
        return body

    # =========================================================================
    # POST ECHO
    # =========================================================================

    def _echo_post(self, head: RequestHead, conn: Connection) -> HTTPResponse:
        if head.has_content_length:
            try:
                body = self._read_body(head, conn)
            except BodyReadError as e:
                logger.warning(f"[{conn.id}] {e}")
                return text_response(HTTPStatus.BAD_REQUEST, BODY_READ_ERROR)
            lines = body.decode("utf-8", errors="replace").splitlines()
        else:
            lines = self._read_undelimited_lines(conn)

        payload = "".join(collect_until_blank(lines))
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .html(POST_ECHO_TEMPLATE.format(payload=payload))
            .build())

    def _read_undelimited_lines(self, conn: Connection) -> List[str]:
        """
        Read body lines when no Content-Length was sent.

        Stops at a blank line, end of stream, max_body_size, or when the
        client goes quiet for UNDELIMITED_BODY_WAIT seconds. A line still
        missing its terminator when the client goes quiet is kept as the
        last line, the same as a partial line at end of stream.
        """
        lines = []
        total = 0
        saved_timeout = conn.timeout
        conn.set_timeout(UNDELIMITED_BODY_WAIT)
        try:
            while total < self.config.max_body_size:
                raw = conn.readline(self.config.max_line_length)
                if raw is None or raw == b"":
                    break
                total += len(raw)
                lines.append(raw.decode("utf-8", errors="replace"))
        except RequestTimeout:
            # Client sent nothing more
            if conn.has_buffered_data:
                lines.append(conn.take_buffered().decode("utf-8", errors="replace"))
        finally:
            conn.set_timeout(saved_timeout)
        return lines


def collect_until_blank(lines: List[str]) -> List[str]:
    """Lines up to, not including, the first empty one."""
    collected = []
    for line in lines:
        if line == "":
            break
        collected.append(line)
    return collected
