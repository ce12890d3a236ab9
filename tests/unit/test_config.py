"""
Unit tests for server configuration.
"""

import pytest

from simpleweb.config import ServerConfig


class TestServerConfig:
    """Tests for ServerConfig defaults, environment and validation."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.workers == 10
        assert config.overflow == "reject"
        assert config.legacy_app_status is False
        config.validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HTTP_HOST", "0.0.0.0")
        monkeypatch.setenv("HTTP_PORT", "9000")
        monkeypatch.setenv("HTTP_WORKERS", "3")
        monkeypatch.setenv("HTTP_QUEUE_SIZE", "7")
        monkeypatch.setenv("HTTP_TIMEOUT", "2.5")
        monkeypatch.setenv("HTTP_STATIC_DIR", "/srv/www")
        monkeypatch.setenv("HTTP_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("HTTP_LOG_FORMAT", "json")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.workers == 3
        assert config.queue_size == 7
        assert config.timeout == 2.5
        assert config.static_dir == "/srv/www"
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_from_env_defaults(self, monkeypatch):
        for name in ("HTTP_HOST", "HTTP_PORT", "HTTP_WORKERS", "HTTP_STATIC_DIR"):
            monkeypatch.delenv(name, raising=False)

        config = ServerConfig.from_env()

        assert config.port == 8080
        assert config.static_dir is None

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()

    @pytest.mark.parametrize("kwargs", [
        {"port": -1},
        {"port": 70000},
        {"workers": 0},
        {"queue_size": 0},
        {"overflow": "drop"},
        {"buffer_size": 10},
        {"timeout": 0},
        {"max_header_lines": 0},
        {"max_line_length": 10},
        {"max_body_size": -1},
        {"log_format": "xml"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            ServerConfig(**kwargs).validate()
