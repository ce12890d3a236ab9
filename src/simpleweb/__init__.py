"""
=============================================================================
SIMPLEWEB
=============================================================================

A minimal HTTP/1.1 server for small demo and embedded endpoints.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   GET  /app/hello?name=Ana   →  "Hola, Ana"                         │
    │   POST /app/echo  {"text":…} →  "Echo: …"                           │
    │   GET  /style.css            →  file from the static root           │
    │   POST /anything             →  payload echoed in an HTML page      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

One request per connection, answered and closed. A fixed pool of worker
threads does the work; handlers are registered in code before start:

    from simpleweb import HTTPServer, ServerConfig, HandlerRegistry
    from simpleweb.handlers import register_default_handlers

    registry = HandlerRegistry()
    registry.set_static_root("webroot")
    register_default_handlers(registry)

    HTTPServer(ServerConfig(port=8080), registry).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .http import AppHandler, HandlerRegistry
from .server import HTTPServer, create_app

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "HandlerRegistry",
    "AppHandler",
    "create_app",
    "__version__",
]
