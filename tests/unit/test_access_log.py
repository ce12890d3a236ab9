"""
Unit tests for the access log.
"""

import json
import logging

import pytest

from simpleweb.access_log import AccessLogger, RequestLog
from simpleweb.http import HTTPStatus
from simpleweb.http.request import Method, RequestHead
from simpleweb.http.response import ok_text


@pytest.fixture
def head() -> RequestHead:
    return RequestHead(
        Method.GET, "GET", "/app/hello?name=Ana", "HTTP/1.1",
        ("Host: localhost", "User-Agent: pytest"),
    )


class TestRequestLog:
    """Tests for RequestLog."""

    def test_build(self, conn_pair, head):
        conn, _ = conn_pair
        entry = RequestLog.build(conn, head, ok_text("Hola, Ana"))

        assert entry.conn_id == conn.id
        assert entry.method == "GET"
        assert entry.path == "/app/hello?name=Ana"
        assert entry.client_ip == "127.0.0.1"
        assert entry.user_agent == "pytest"
        assert entry.status_code == 200
        assert entry.content_length == len(b"Hola, Ana")

    def test_build_without_head(self, conn_pair):
        """Errors before the request line was read still get a record."""
        conn, _ = conn_pair
        entry = RequestLog.build(conn, None, None)

        assert entry.method == "-"
        assert entry.path == "-"
        assert entry.status_code == 0

    def test_to_text(self):
        entry = RequestLog("abc", "GET", "/x", "10.0.0.1", "-", 404, 12, 1.5, "19/Oct/2026:10:00:00 +0000")
        assert entry.to_text() == '10.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /x" 404 12 1.50ms'


class TestAccessLogger:
    """Tests for AccessLogger output."""

    def test_text_format(self, conn_pair, head, caplog):
        conn, _ = conn_pair
        with caplog.at_level(logging.INFO, logger="simpleweb.access"):
            AccessLogger("text").log(conn, head, ok_text("hi"))

        assert '"GET /app/hello?name=Ana" 200 2' in caplog.text

    def test_json_format(self, conn_pair, head, caplog):
        conn, _ = conn_pair
        with caplog.at_level(logging.INFO, logger="simpleweb.access"):
            AccessLogger("json").log(conn, head, ok_text("hi"))

        record = json.loads(caplog.records[-1].getMessage())
        assert record["status_code"] == HTTPStatus.OK
        assert record["path"] == "/app/hello?name=Ana"

    def test_invalid_format(self):
        with pytest.raises(ValueError):
            AccessLogger("xml")
