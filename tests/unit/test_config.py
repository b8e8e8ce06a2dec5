"""
Unit tests for configuration loading and the CLI.
"""

import pytest

from simplecrud.config import ServerConfig
from simplecrud.__main__ import build_parser, load_config


class TestDefaults:

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.max_request_size == 1024 * 1024
        assert config.cors is True
        assert config.unique_email_on_update is False
        assert config.server_name == "SimpleCRUD/1.0"
        config.validate()


class TestFromEnv:

    def test_empty_environment(self):
        config = ServerConfig.from_env({})
        assert config == ServerConfig()

    def test_port(self):
        assert ServerConfig.from_env({"PORT": "8000"}).port == 8000

    def test_empty_port_is_default(self):
        assert ServerConfig.from_env({"PORT": ""}).port == 3000

    def test_non_integer_port(self):
        with pytest.raises(ValueError):
            ServerConfig.from_env({"PORT": "http"})

    def test_all_variables(self):
        config = ServerConfig.from_env({
            "HOST": "127.0.0.1",
            "PORT": "8080",
            "REQUEST_TIMEOUT": "12.5",
            "WORKERS": "2",
            "LOG_LEVEL": "debug",
            "LOG_FORMAT": "JSON",
            "CORS": "false",
            "UNIQUE_EMAIL_ON_UPDATE": "yes",
        })

        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.timeout == 12.5
        assert config.max_workers == 2
        assert config.min_workers == 2
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"
        assert config.cors is False
        assert config.unique_email_on_update is True
        config.validate()

    @pytest.mark.parametrize("value", ["0", "false", "No", "OFF"])
    def test_cors_disabled(self, value):
        assert ServerConfig.from_env({"CORS": value}).cors is False

    def test_bad_boolean(self):
        with pytest.raises(ValueError):
            ServerConfig.from_env({"CORS": "maybe"})


class TestValidate:

    @pytest.mark.parametrize("changes", [
        {"port": -1},
        {"port": 70000},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"buffer_size": 10},
        {"timeout": 0},
        {"log_level": "LOUD"},
        {"log_format": "xml"},
    ])
    def test_invalid(self, changes):
        with pytest.raises(ValueError):
            ServerConfig(**changes).validate()

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()

    def test_server_validates_on_creation(self):
        from simplecrud import HTTPServer

        with pytest.raises(ValueError):
            HTTPServer(ServerConfig(port=-5))


class TestCLI:

    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "8000")
        monkeypatch.setenv("HOST", "10.0.0.1")

        config = load_config(["--port", "9000", "--log-level", "debug", "--no-cors"])

        assert config.port == 9000
        assert config.host == "10.0.0.1"
        assert config.log_level == "DEBUG"
        assert config.cors is False

    def test_environment_only(self, monkeypatch):
        monkeypatch.setenv("PORT", "8000")
        monkeypatch.delenv("CORS", raising=False)

        config = load_config([])

        assert config.port == 8000
        assert config.cors is True

    def test_invalid_port_from_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "not-a-port")

        with pytest.raises(ValueError):
            load_config([])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "SimpleCRUD 1.0.0" in capsys.readouterr().out

    def test_main_exits_on_bad_config(self, monkeypatch, capsys):
        from simplecrud.__main__ import main

        monkeypatch.setenv("PORT", "99999")

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        assert "Invalid port" in capsys.readouterr().err
