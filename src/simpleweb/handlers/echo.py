"""
=============================================================================
ECHO HANDLER
=============================================================================

Echoes the "text" field of a JSON-looking request body:

    POST /app/echo
    Content-Length: 27

    {"text": "Hello, Server!"}      →  Echo: Hello, Server!

The body is NOT parsed as JSON. One field is pulled out with a pattern, so
escaped quotes and nested objects are not understood:

    "text"  \\s*  :  \\s*  "(.*?)"
                           ─────
                           shortest run up to the next double quote

=============================================================================
"""

import re

from ..http.registry import AppHandler


NO_MESSAGE = "Error: No se proporcionó ningún mensaje."
NO_TEXT_FIELD = "Error: Campo 'text' no encontrado"

TEXT_FIELD = re.compile(r'"text"\s*:\s*"(.*?)"')


class EchoHandler(AppHandler):
    """Returns ``"Echo: " + text`` for the request body's text field."""

    consumes_body = True

    def handle(self, request: str, response_hint: str = "") -> str:
        if not request:
            return NO_MESSAGE
        return "Echo: " + self.extract_text(request)

    @staticmethod
    def extract_text(body: str) -> str:
        match = TEXT_FIELD.search(body)
        if match is None:
            return NO_TEXT_FIELD
        return match.group(1)
