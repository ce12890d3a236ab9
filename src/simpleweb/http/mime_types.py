"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps a requested file name to the Content-type sent with it.

=============================================================================
A DELIBERATELY SMALL TABLE
=============================================================================

The server only knows the handful of types a small static site needs:

    ┌────────────────────────────────────────────────────────────────────┐
    │  .html  → text/html                                                │
    │  .css   → text/css                                                 │
    │  .js    → application/javascript                                   │
    │  .png   → image/png                                                │
    │  .jpg   → image/jpeg                                               │
    │  else   → text/plain                                               │
    └────────────────────────────────────────────────────────────────────┘

Two rules that differ from a general-purpose MIME database:

1. The suffix match is CASE-SENSITIVE: "LOGO.PNG" is served as text/plain.
2. Unknown extensions default to text/plain, not application/octet-stream.

Only the name is looked at. File contents are never sniffed.

=============================================================================
"""

from pathlib import PurePosixPath


MIME_TYPES = {
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".png": "image/png",
    ".jpg": "image/jpeg",
}

# Default for anything not in the table
DEFAULT_MIME_TYPE = "text/plain"


def get_mime_type(path: str) -> str:
    """
    Get the MIME type for a file based on its extension.

    Examples:
        >>> get_mime_type("style.css")
        'text/css'

        >>> get_mime_type("/img/logo.png")
        'image/png'

        >>> get_mime_type("notes.md")
        'text/plain'
    """
    return MIME_TYPES.get(PurePosixPath(path).suffix, DEFAULT_MIME_TYPE)
