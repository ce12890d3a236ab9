"""
Greeting handler for /app/hello.

    GET /app/hello?name=John      →  Hola, John
    GET /app/hello?name=Jos%C3%A9 →  Hola, José
    GET /app/hello                →  Error: No se proporcionó ningún nombre.
"""

import logging

from ..errors import DecodeError
from ..http.query import query_param, url_decode
from ..http.registry import AppHandler


logger = logging.getLogger(__name__)


NO_NAME_MESSAGE = "Error: No se proporcionó ningún nombre."
DECODE_ERROR_MESSAGE = "Error al decodificar el nombre."


class HelloHandler(AppHandler):
    """Greets the ``name`` query parameter."""

    consumes_body = False

    def handle(self, request: str, response_hint: str = "") -> str:
        name = query_param(request, "name")
        if not name:
            return NO_NAME_MESSAGE

        try:
            decoded = url_decode(name)
        except DecodeError as e:
            logger.debug(f"Bad name parameter: {e}")
            return DECODE_ERROR_MESSAGE

        return "Hola, " + decoded
