"""
=============================================================================
SERVER ERRORS
=============================================================================

Exception types raised while handling a single connection.

=============================================================================
ERROR TAXONOMY
=============================================================================

Every error that can be answered on the wire carries the HTTP status code
that should be returned to the client. The worker that owns the connection
catches these at its boundary and turns them into a small plain-text
response; nothing else in the server needs to know about status codes.

    ┌────────────────────────────────────────────────────────────────────┐
    │  Exception                 Status   Raised by                      │
    ├────────────────────────────────────────────────────────────────────┤
    │  ConnectionClosed          -        scanner (peer sent nothing)    │
    │  MalformedRequestLine      400      scanner                        │
    │  HeaderTooLarge            431      scanner                        │
    │  RequestTimeout            408      connection reads               │
    │  BodyReadError             400      router (body reads)            │
    │  PayloadTooLarge           413      router (body reads)            │
    │  DecodeError               -        url_decode (turned into text)  │
    │  RegistrySealedError       -        registry after seal()          │
    └────────────────────────────────────────────────────────────────────┘

ConnectionClosed is special: there is nobody left to answer, so the worker
just closes the socket.

=============================================================================
"""

from typing import Optional


class ServerError(Exception):
    """
    Base class for errors that map to an HTTP response.

    Subclasses set a default ``status_code``; callers may override it
    per instance.
    """

    status_code: int = 500

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class ConnectionClosed(ServerError):
    """The peer closed the connection before sending a request line."""


class MalformedRequestLine(ServerError):
    """The request line has fewer than two tokens or is otherwise unusable."""

    status_code = 400


class HeaderTooLarge(ServerError):
    """The request head exceeded the configured header-line limit."""

    status_code = 431


class RequestTimeout(ServerError):
    """A read on the connection did not complete before the deadline."""

    status_code = 408


class BodyReadError(ServerError):
    """The request body could not be read in full."""

    status_code = 400


class PayloadTooLarge(ServerError):
    """The declared or received body is larger than ``max_body_size``."""

    status_code = 413


class DecodeError(ValueError):
    """A percent-encoded value could not be decoded."""


class RegistrySealedError(RuntimeError):
    """The handler registry was modified after the server started."""
