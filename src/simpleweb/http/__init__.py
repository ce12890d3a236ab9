"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Translates bytes on a Connection into a RequestHead, a RequestHead into an
HTTPResponse, and an HTTPResponse back into bytes.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ SCANNER (request.py)                                                │
    │   Connection ──► RequestHead(method, target, version, headers)      │
    ├─────────────────────────────────────────────────────────────────────┤
    │ REGISTRY (registry.py, query.py)                                    │
    │   "/hello" ──► HelloHandler, static root, query_param()             │
    ├─────────────────────────────────────────────────────────────────────┤
    │ ROUTER (router.py)                                                  │
    │   /app/* ──► registry    GET ──► static    POST ──► echo page       │
    ├─────────────────────────────────────────────────────────────────────┤
    │ RESPONSE (response.py, status_codes.py, mime_types.py)              │
    │   ResponseBuilder().status(200).text("Hola") ──► bytes              │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .status_codes import HTTPStatus
from .mime_types import get_mime_type
from .query import query_param, url_decode
from .registry import AppHandler, FunctionHandler, HandlerRegistry
from .request import Method, RequestHead, RequestScanner, parse_request_line
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok_text,
    text_response,
    not_found_page,
    forbidden_page,
    method_not_allowed,
    error_response,
)
from .router import Router


__all__ = [
    "HTTPStatus",
    "get_mime_type",
    "query_param",
    "url_decode",
    "AppHandler",
    "FunctionHandler",
    "HandlerRegistry",
    "Method",
    "RequestHead",
    "RequestScanner",
    "parse_request_line",
    "HTTPResponse",
    "ResponseBuilder",
    "ok_text",
    "text_response",
    "not_found_page",
    "forbidden_page",
    "method_not_allowed",
    "error_response",
    "Router",
]
