"""
=============================================================================
QUERY STRING HELPERS
=============================================================================

Two small functions used by /app handlers:

    query_param("/app/hello?name=Jo%C3%A3o", "name")  →  "Jo%C3%A3o"
    url_decode("Jo%C3%A3o")                           →  "João"

query_param() returns the value exactly as it appears on the request line.
Decoding is a separate, explicit step so that a handler can tell a missing
parameter ("") apart from one that fails to decode (DecodeError).

=============================================================================
"""

import re
from urllib.parse import unquote_plus

from ..errors import DecodeError


# A "%" not followed by two hex digits
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def query_param(target: str, name: str) -> str:
    """
    Return the raw value of query parameter ``name`` in ``target``.

    =====================================================================
    PARSING RULES
    =====================================================================

        /app/hello?name=John&lang=es
                   ─────────────────
                   split on "&"
                   ─────────  ───────
                   split each pair on the FIRST "="

    - The target is split on its first "?". No "?" → "".
    - First pair whose key equals ``name`` wins.
    - A pair without "=" has the value "".
    - Absent parameter → "".

    =====================================================================
    """
    _, sep, query = target.partition("?")
    if not sep:
        return ""

    for pair in query.split("&"):
        key, _, value = pair.partition("=")
        if key == name:
            return value
    return ""


def url_decode(value: str) -> str:
    """
    Strictly decode an application/x-www-form-urlencoded value.

    "+" becomes a space and "%XX" sequences are decoded as UTF-8.

    Raises:
        DecodeError: on a malformed escape ("%", "%zz") or bytes that
                     are not valid UTF-8 ("%ff").
    """
    if _BAD_ESCAPE.search(value):
        raise DecodeError(f"Malformed percent-escape in {value!r}")
    try:
        return unquote_plus(value, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Invalid UTF-8 in {value!r}") from e
