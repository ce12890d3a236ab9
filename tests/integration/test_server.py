"""
End-to-end tests: a real server on a free port, raw bytes over TCP.
"""

import json
import threading
import time

import pytest

from simpleweb import HTTPServer, ServerConfig, create_app
from simpleweb.__main__ import build_parser, config_from_args
from simpleweb.errors import RegistrySealedError

from conftest import STYLE_CSS, TestServer, send_raw


class TestAppHandlers:
    """The demo /app handlers over the wire."""

    def test_hello(self, test_server, parse_response):
        status, headers, body = parse_response(
            test_server.request(b"GET /app/hello?name=JohnDoe HTTP/1.1\r\nHost: localhost\r\n\r\n")
        )

        assert status == "HTTP/1.1 200 OK"
        assert headers["content-type"].startswith("text/plain")
        assert int(headers["content-length"]) == len(body)
        assert body == b"Hola, JohnDoe"

    def test_hello_without_name(self, test_server, parse_response):
        _, _, body = parse_response(test_server.request(b"GET /app/hello HTTP/1.1\r\n\r\n"))

        assert body.decode() == "Error: No se proporcionó ningún nombre."

    def test_echo(self, test_server, parse_response):
        payload = json.dumps({"text": "Hello, Server!"}).encode()
        raw = (
            b"POST /app/echo HTTP/1.1\r\n"
            b"Content-Type: application/json\r\n"
            + f"Content-Length: {len(payload)}\r\n\r\n".encode()
            + payload
        )

        status, _, body = parse_response(test_server.request(raw))

        assert status == "HTTP/1.1 200 OK"
        assert body == b"Echo: Hello, Server!"

    def test_echo_without_text_field(self, test_server, parse_response):
        payload = b'{"message": "hi"}'
        raw = b"POST /app/echo HTTP/1.1\r\n" + f"Content-Length: {len(payload)}\r\n\r\n".encode() + payload

        _, _, body = parse_response(test_server.request(raw))

        assert body == b"Echo: Error: Campo 'text' no encontrado"

    def test_unknown_route(self, test_server, parse_response):
        status, _, body = parse_response(test_server.request(b"GET /app/unknown HTTP/1.1\r\n\r\n"))

        assert status == "HTTP/1.1 404 Not Found"
        assert body.decode() == "Error: Método no soportado"


class TestStaticFiles:
    """GET for files under the static root."""

    def test_css(self, test_server, parse_response):
        status, headers, body = parse_response(test_server.request(b"GET /style.css HTTP/1.1\r\n\r\n"))

        assert status == "HTTP/1.1 200 OK"
        assert headers["content-type"] == "text/css"
        assert int(headers["content-length"]) == len(STYLE_CSS)
        assert body == STYLE_CSS

    def test_nested_file(self, test_server, parse_response):
        _, headers, body = parse_response(test_server.request(b"GET /sub/app.js HTTP/1.1\r\n\r\n"))

        assert headers["content-type"] == "application/javascript"
        assert body == b"console.log('hi');"

    def test_missing_file(self, test_server, parse_response):
        status, headers, body = parse_response(test_server.request(b"GET /nope.html HTTP/1.1\r\n\r\n"))

        assert status == "HTTP/1.1 404 Not Found"
        assert headers["content-type"] == "text/html"
        assert b"File Not Found" in body

    def test_overlong_name_is_404(self, test_server, parse_response):
        status, headers, body = parse_response(
            test_server.request(b"GET /" + b"a" * 300 + b" HTTP/1.1\r\n\r\n")
        )

        assert status == "HTTP/1.1 404 Not Found"
        assert headers["content-type"] == "text/html"
        assert b"File Not Found" in body

    @pytest.mark.parametrize("target", [b"/../secret.txt", b"/%2e%2e/secret.txt", b"/sub/../../secret.txt"])
    def test_traversal_forbidden(self, test_server, parse_response, target):
        status, _, body = parse_response(test_server.request(b"GET " + target + b" HTTP/1.1\r\n\r\n"))

        assert status == "HTTP/1.1 403 Forbidden"
        assert b"top secret" not in body

    def test_concurrent_gets(self, test_server, parse_response):
        results = []
        lock = threading.Lock()

        def fetch():
            data = test_server.request(b"GET /style.css HTTP/1.1\r\n\r\n")
            with lock:
                results.append(parse_response(data))

        threads = [threading.Thread(target=fetch) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10.0)

        assert len(results) == 20
        for status, _, body in results:
            assert status == "HTTP/1.1 200 OK"
            assert body == STYLE_CSS


class TestOtherRequests:
    """POST echo page, bad requests, unsupported methods."""

    def test_post_echo_page(self, test_server, parse_response):
        raw = b"POST /form HTTP/1.1\r\nContent-Length: 11\r\n\r\nhello=world"

        status, headers, body = parse_response(test_server.request(raw))

        assert status == "HTTP/1.1 200 OK"
        assert headers["content-type"].startswith("text/html")
        assert b"<h1>POST data received:</h1>" in body
        assert b"<p>hello=world</p>" in body

    def test_malformed_request_line(self, test_server, parse_response):
        status, _, body = parse_response(test_server.request(b"GARBAGE\r\n\r\n"))

        assert status == "HTTP/1.1 400 Bad Request"
        assert body == b"Error: Bad Request"

    def test_put_not_allowed(self, test_server, parse_response):
        status, headers, _ = parse_response(test_server.request(b"PUT /style.css HTTP/1.1\r\n\r\n"))

        assert status == "HTTP/1.1 405 Method Not Allowed"
        assert headers["allow"] == "GET, POST"

    def test_empty_connection(self, test_server):
        """A client that connects and hangs up gets nothing back."""
        assert test_server.request(b"") == b""

    def test_server_keeps_serving_after_errors(self, test_server, parse_response):
        test_server.request(b"GARBAGE\r\n\r\n")
        test_server.request(b"")

        status, _, _ = parse_response(test_server.request(b"GET /index.html HTTP/1.1\r\n\r\n"))
        assert status == "HTTP/1.1 200 OK"


class TestLifecycle:
    """Startup, overload and shutdown."""

    def test_registry_sealed_after_start(self, test_server):
        assert test_server.server.registry.sealed

        with pytest.raises(RegistrySealedError):
            test_server.server.registry.register("/late", lambda request, hint: "late")

    def test_stop_returns_from_run(self, config, registry):
        srv = TestServer(HTTPServer(config, registry))
        srv.start()

        srv.stop()

        assert srv.stopped

    def test_binds_configured_port(self, registry, free_port, parse_response):
        config = ServerConfig(port=free_port, workers=2, log_level="WARNING")
        srv = TestServer(HTTPServer(config, registry))
        srv.start()

        try:
            assert srv.port == free_port
            status, _, _ = parse_response(send_raw(free_port, b"GET /style.css HTTP/1.1\r\n\r\n"))
            assert status == "HTTP/1.1 200 OK"
        finally:
            srv.stop()

    def test_queue_full_gets_503(self, registry, parse_response):
        release = threading.Event()
        started = threading.Event()

        def slow(request, hint):
            started.set()
            release.wait(5.0)
            return "done"

        registry.register("/slow", slow)
        config = ServerConfig(port=0, workers=1, queue_size=1, timeout=5.0, log_level="WARNING")
        srv = TestServer(HTTPServer(config, registry))
        srv.start()

        responses = []

        def fetch():
            responses.append(send_raw(srv.port, b"GET /app/slow HTTP/1.1\r\n\r\n"))

        busy = threading.Thread(target=fetch)
        queued = threading.Thread(target=fetch)
        busy.start()
        try:
            assert started.wait(5.0)

            queued.start()
            deadline = time.time() + 5.0
            while srv.server.stats["tasks"]["queued"] < 1 and time.time() < deadline:
                time.sleep(0.01)

            status, _, body = parse_response(send_raw(srv.port, b"GET /style.css HTTP/1.1\r\n\r\n"))
            assert status == "HTTP/1.1 503 Service Unavailable"
            assert body == b"Error: Service Unavailable"
        finally:
            release.set()
            busy.join(timeout=5.0)
            if queued.is_alive():
                queued.join(timeout=5.0)
            srv.stop()

        assert [parse_response(r)[2] for r in responses] == [b"done", b"done"]


class TestStartup:
    """create_app and the command-line layer."""

    def test_create_app_registers_demo_handlers(self, static_root):
        app = create_app(ServerConfig(port=0, static_dir=str(static_root)))

        assert "/hello" in app.registry
        assert "/echo" in app.registry
        assert app.registry.static_root == str(static_root)

    def test_config_from_args(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "9000")
        monkeypatch.delenv("HTTP_STATIC_DIR", raising=False)

        args = build_parser().parse_args(["--workers", "3", "--overflow", "block", "--legacy-app-status"])
        config = config_from_args(args)

        assert config.port == 9000            # From the environment
        assert config.workers == 3
        assert config.overflow == "block"
        assert config.legacy_app_status is True
        assert config.static_dir == "webroot"

    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "9000")

        config = config_from_args(build_parser().parse_args(["--port", "3000", "--static", "public"]))

        assert config.port == 3000
        assert config.static_dir == "public"
