"""
=============================================================================
HANDLERS MODULE
=============================================================================

Everything that produces response content:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   /app/hello?name=X   → HelloHandler      "Hola, X"                 │
    │   /app/echo           → EchoHandler       "Echo: <text field>"      │
    │   GET anything else   → StaticFileResolver (file / 403 / 404)       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

register_default_handlers() is the startup routine that wires the two
demo handlers into a registry.

=============================================================================
"""

from ..http.registry import HandlerRegistry
from .echo import EchoHandler
from .hello import HelloHandler
from .static import (
    ResolveStatus,
    Resolution,
    StaticFile,
    StaticFileResolver,
)


def register_default_handlers(registry: HandlerRegistry) -> HandlerRegistry:
    """Register /hello and /echo on ``registry`` and return it."""
    registry.register("/hello", HelloHandler())
    registry.register("/echo", EchoHandler())
    return registry


__all__ = [
    "EchoHandler",
    "HelloHandler",
    "ResolveStatus",
    "Resolution",
    "StaticFile",
    "StaticFileResolver",
    "register_default_handlers",
]
