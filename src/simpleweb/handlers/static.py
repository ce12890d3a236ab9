"""
=============================================================================
STATIC FILE RESOLVER
=============================================================================

Maps a GET target onto a file under the static root.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

A client can try to climb out of the static root:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /../../etc/passwd HTTP/1.1                                     │
    │  GET /%2e%2e/%2e%2e/etc/passwd HTTP/1.1                             │
    │                                                                      │
    │  Both must be refused. We:                                          │
    │  1. Drop the query string and percent-decode the path              │
    │  2. Resolve the full path (follow .. and symlinks)                 │
    │  3. Check that it is still inside the resolved root                │
    │  4. If not → 403 Forbidden                                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

        full_path = (root / user_input).resolve()
        full_path.relative_to(root)      # raises ValueError if outside

=============================================================================
OUTCOMES
=============================================================================

    FOUND       → 200, exact bytes, Content-type from the MIME table
    NOT_FOUND   → 404 "File Not Found" page
                  (missing, a directory, unreadable, bad path)
    FORBIDDEN   → 403 "Forbidden" page (escapes the root)

There are no caching headers and no directory listings. A directory is only
served when an index file is configured and present in it.

=============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote

from ..http.mime_types import get_mime_type
from ..http.registry import HandlerRegistry
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus,
    not_found_page, forbidden_page,
)


logger = logging.getLogger(__name__)


class ResolveStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class StaticFile:
    """A file read from the static root."""

    path: Path
    content: bytes
    content_type: str

    @property
    def length(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class Resolution:
    """Outcome of a lookup. ``file`` is set only when status is FOUND."""

    status: ResolveStatus
    file: Optional[StaticFile] = None

    @property
    def found(self) -> bool:
        return self.status is ResolveStatus.FOUND


_NOT_FOUND = Resolution(ResolveStatus.NOT_FOUND)
_FORBIDDEN = Resolution(ResolveStatus.FORBIDDEN)


class StaticFileResolver:
    """
    Resolves request targets to files under the static root.

    Usage:
        resolver = StaticFileResolver(registry)
        response = resolver.respond("/style.css")

    The root is read from the registry on every call, so a resolver may be
    built before ``set_static_root()`` runs. Once the registry is sealed the
    root no longer changes.
    """

    def __init__(
        self,
        registry_or_root: Union[HandlerRegistry, str, Path],
        index_file: Optional[str] = None,
    ):
        """
        Args:
            registry_or_root: A HandlerRegistry (its static_root is used)
                              or a directory path.
            index_file: File served for directory targets, e.g.
                        "index.html". None disables directory serving.
        """
        self._registry = registry_or_root if isinstance(registry_or_root, HandlerRegistry) else None
        self._root = None if self._registry else str(registry_or_root)
        self.index_file = index_file

    @property
    def root(self) -> Path:
        """The canonical static root."""
        raw = self._registry.static_root if self._registry else self._root
        return Path(raw or ".").resolve()

    def resolve(self, request_path: str) -> Resolution:
        """
        Look up ``request_path`` under the static root.

        Args:
            request_path: The request target, e.g. "/css/site.css?v=2".

        Returns:
            A Resolution. Never raises for a bad or hostile path.
        """
        # ─────────────────────────────────────────────────────────────────
        # CLEAN THE TARGET
        # ─────────────────────────────────────────────────────────────────
        path_part = request_path.split("?", 1)[0]
        try:
            decoded = unquote(path_part, encoding="utf-8", errors="strict")
        except UnicodeDecodeError:
            return _NOT_FOUND
        if "\x00" in decoded:
            return _NOT_FOUND

        root = self.root
        relative = decoded.lstrip("/")

        # ─────────────────────────────────────────────────────────────────
        # CONTAINMENT CHECK
        # ─────────────────────────────────────────────────────────────────
        try:
            full_path = (root / relative).resolve()
            full_path.relative_to(root)
        except ValueError:
            logger.warning(f"Path traversal attempt blocked: {request_path}")
            return _FORBIDDEN
        except OSError as e:
            logger.debug(f"Cannot resolve {request_path}: {e}")
            return _NOT_FOUND

        # ─────────────────────────────────────────────────────────────────
        # DIRECTORIES
        # ─────────────────────────────────────────────────────────────────
        # stat() can fail on names resolve() accepted (ENAMETOOLONG, EACCES)
        try:
            if full_path.is_dir():
                if not self.index_file:
                    return _NOT_FOUND
                full_path = full_path / self.index_file

            if not full_path.is_file():
                return _NOT_FOUND

            content = full_path.read_bytes()
        except OSError as e:
            logger.debug(f"Cannot serve {request_path}: {e}")
            return _NOT_FOUND

        return Resolution(
            ResolveStatus.FOUND,
            StaticFile(full_path, content, get_mime_type(full_path.name)),
        )

    def respond(self, request_path: str) -> HTTPResponse:
        """Build the full HTTP response for a static GET."""
        resolution = self.resolve(request_path)

        if resolution.status is ResolveStatus.FORBIDDEN:
            return forbidden_page()
        if resolution.status is ResolveStatus.NOT_FOUND:
            logger.debug(f"Static file not found: {request_path}")
            return not_found_page()

        static_file = resolution.file
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .file(static_file.content, static_file.content_type)
            .build())
