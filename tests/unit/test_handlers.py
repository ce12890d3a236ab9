"""
Unit tests for the /hello and /echo handlers.
"""

import pytest

from simpleweb.handlers import EchoHandler, HelloHandler, register_default_handlers
from simpleweb.http import HandlerRegistry


class TestHelloHandler:
    """Tests for HelloHandler."""

    @pytest.fixture
    def hello(self):
        return HelloHandler()

    def test_greets_name(self, hello):
        assert hello.handle("/app/hello?name=JohnDoe") == "Hola, JohnDoe"

    def test_decodes_name(self, hello):
        assert hello.handle("/app/hello?name=Jos%C3%A9+Luis") == "Hola, José Luis"

    def test_missing_name(self, hello):
        assert hello.handle("/app/hello") == "Error: No se proporcionó ningún nombre."

    def test_empty_name(self, hello):
        assert hello.handle("/app/hello?name=") == "Error: No se proporcionó ningún nombre."

    def test_undecodable_name(self, hello):
        assert hello.handle("/app/hello?name=%zz") == "Error al decodificar el nombre."

    def test_other_params_ignored(self, hello):
        assert hello.handle("/app/hello?lang=es&name=Ana") == "Hola, Ana"

    def test_does_not_consume_body(self, hello):
        assert hello.consumes_body is False


class TestEchoHandler:
    """Tests for EchoHandler."""

    @pytest.fixture
    def echo(self):
        return EchoHandler()

    def test_echoes_text_field(self, echo):
        assert echo.handle('{"text": "Hello, Server!"}') == "Echo: Hello, Server!"

    def test_whitespace_around_colon(self, echo):
        assert echo.handle('{"text"  :   "hi"}') == "Echo: hi"

    def test_first_text_field_wins(self, echo):
        assert echo.handle('{"text": "a", "more": {"text": "b"}}') == "Echo: a"

    def test_empty_text(self, echo):
        assert echo.handle('{"text": ""}') == "Echo: "

    def test_missing_text_field(self, echo):
        assert echo.handle('{"message": "hi"}') == "Echo: Error: Campo 'text' no encontrado"

    def test_empty_body(self, echo):
        assert echo.handle("") == "Error: No se proporcionó ningún mensaje."

    def test_consumes_body(self, echo):
        assert echo.consumes_body is True


def test_register_default_handlers():
    registry = register_default_handlers(HandlerRegistry())

    assert registry.prefixes() == ["/echo", "/hello"]
    assert isinstance(registry.lookup("/hello"), HelloHandler)
    assert isinstance(registry.lookup("/echo"), EchoHandler)
