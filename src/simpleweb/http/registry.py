"""
=============================================================================
HANDLER REGISTRY
=============================================================================

The routing table for dynamic /app handlers, plus the static-files root.

=============================================================================
LIFECYCLE: CONFIGURE, SEAL, SERVE
=============================================================================

The registry is written during a single-threaded startup phase and only
read afterwards, by every worker thread at once:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   STARTUP (one thread)                                              │
    │       registry.set_static_root("webroot")                           │
    │       registry.register("/hello", HelloHandler())                   │
    │       registry.register("/echo", EchoHandler())                     │
    │                                                                      │
    │   HTTPServer.run()                                                   │
    │       registry.seal()       ← from here on, writes raise            │
    │                                                                      │
    │   SERVING (N worker threads)                                        │
    │       registry.match("/hello")   read-only                          │
    │       registry.static_root       read-only                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Because nothing writes after seal(), the workers need no lock. seal() turns
"please don't modify this while serving" into an error you cannot miss.

=============================================================================
HANDLERS
=============================================================================

A handler turns one request into one string. It says, through
``consumes_body``, what it wants as input:

    consumes_body = False   → the full request target
                              ("/app/hello?name=John")
    consumes_body = True    → the raw request body
                              ('{"text": "Hi"}')

The Router reads that flag instead of checking route names.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple, Union

from ..errors import RegistrySealedError
from .query import query_param


logger = logging.getLogger(__name__)


# A plain function handler: (request, response_hint) -> response text
HandlerFunc = Callable[[str, str], str]


class AppHandler(ABC):
    """
    Base class for /app handlers.

        class Greeter(AppHandler):
            def handle(self, request, response_hint=""):
                return "hi"
    """

    consumes_body: bool = False

    @abstractmethod
    def handle(self, request: str, response_hint: str = "") -> str:
        """
        Produce the response text for one request.

        Args:
            request: The full request target, or the raw body when
                     ``consumes_body`` is True.
            response_hint: Reserved for handlers that shape their output
                           from an existing response; the Router passes "".
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class FunctionHandler(AppHandler):
    """Adapts a plain ``(request, response_hint) -> str`` function."""

    def __init__(self, func: HandlerFunc, consumes_body: bool = False):
        self.func = func
        self.consumes_body = consumes_body

    def handle(self, request: str, response_hint: str = "") -> str:
        return self.func(request, response_hint)

    @property
    def name(self) -> str:
        return getattr(self.func, "__name__", "FunctionHandler")


class HandlerRegistry:
    """
    Prefix → handler table with a static-files root.

    Usage:
        registry = HandlerRegistry()

        @registry.route("/hello")
        def hello(request, response_hint):
            return "Hola"

        registry.register("/echo", EchoHandler())
        registry.set_static_root("webroot")
        registry.seal()
    """

    def __init__(self, static_root: str = ""):
        self._handlers: Dict[str, AppHandler] = {}
        self._static_root = static_root
        self._sealed = False

    # =========================================================================
    # REGISTRATION (startup only)
    # =========================================================================

    def register(
        self,
        prefix: str,
        handler: Union[AppHandler, HandlerFunc],
        consumes_body: bool = False,
    ) -> AppHandler:
        """
        Bind ``handler`` to ``prefix``, replacing any earlier binding.

        Args:
            prefix: Path under /app, e.g. "/hello".
            handler: An AppHandler, or a plain function that is wrapped
                     in a FunctionHandler.
            consumes_body: Only used when wrapping a plain function.

        Returns:
            The stored AppHandler.

        Raises:
            ValueError: If prefix is empty.
            RegistrySealedError: If the server is already running.
        """
        self._check_not_sealed()
        if not prefix:
            raise ValueError("Handler prefix must not be empty")

        if not isinstance(handler, AppHandler):
            handler = FunctionHandler(handler, consumes_body=consumes_body)

        if prefix in self._handlers:
            logger.debug(f"Replacing handler for {prefix}")
        self._handlers[prefix] = handler
        return handler

    def route(self, prefix: str, consumes_body: bool = False) -> Callable[[HandlerFunc], HandlerFunc]:
        """
        Decorator form of register().

        The decorated function is returned unchanged.
        """
        def decorator(func: HandlerFunc) -> HandlerFunc:
            self.register(prefix, func, consumes_body=consumes_body)
            return func
        return decorator

    def set_static_root(self, path: str) -> None:
        """Set the static-files root. The path is not checked here."""
        self._check_not_sealed()
        self._static_root = path

    def seal(self) -> None:
        """Freeze the registry. Idempotent."""
        if not self._sealed:
            logger.debug(f"Registry sealed with prefixes {self.prefixes()}")
        self._sealed = True

    def _check_not_sealed(self) -> None:
        if self._sealed:
            raise RegistrySealedError("Handler registry is sealed; configure it before the server starts")

    # =========================================================================
    # LOOKUP (any thread)
    # =========================================================================

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def static_root(self) -> str:
        return self._static_root

    def lookup(self, prefix: str) -> Optional[AppHandler]:
        """Exact-key lookup. None if nothing is registered for ``prefix``."""
        return self._handlers.get(prefix)

    def match(self, subpath: str) -> Optional[Tuple[str, AppHandler]]:
        """
        Find the handler whose prefix ``subpath`` starts with.

        The longest matching prefix wins, so "/echo/raw" can be registered
        next to "/echo".

        Args:
            subpath: The target with "/app" stripped, e.g. "/hello?name=Jo".

        Returns:
            (prefix, handler) or None.
        """
        best: Optional[str] = None
        for prefix in self._handlers:
            if subpath.startswith(prefix) and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return None
        return best, self._handlers[best]

    def prefixes(self) -> List[str]:
        return sorted(self._handlers)

    def __contains__(self, prefix: str) -> bool:
        return prefix in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    # Kept on the registry so handlers only need the one object
    query_param = staticmethod(query_param)
