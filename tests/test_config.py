"""Tests for client settings."""

import json

import pytest
from pydantic import ValidationError

from gamelink.config import (
    ClientSettings,
    ConnectionConfig,
    load_client_settings,
    settings_from_env,
)
from gamelink.errors import ConfigError


class TestConnectionConfig:
    """Defaults and validation."""

    def test_defaults(self):
        config = ConnectionConfig()

        assert config.initial_delay_ms == 1000
        assert config.max_delay_ms == 30000
        assert config.backoff_multiplier == 2.0
        assert config.jitter_factor == 0.25
        assert config.max_consecutive_failures == 10
        assert config.circuit_breaker_cooldown_ms == 300000
        assert config.heartbeat_interval_ms == 10000
        assert config.connection_timeout_ms == 10000
        assert config.max_reconnect_attempts is None
        assert config.max_queue_size is None

    def test_camel_case_aliases(self):
        config = ConnectionConfig(initialDelayMs=250, maxConsecutiveFailures=3)
        assert config.initial_delay_ms == 250
        assert config.max_consecutive_failures == 3

    def test_frozen(self):
        config = ConnectionConfig()
        with pytest.raises(ValidationError):
            config.initial_delay_ms = 5

    @pytest.mark.parametrize(
        "overrides",
        [
            {"initial_delay_ms": 0},
            {"initial_delay_ms": 5000, "max_delay_ms": 1000},
            {"backoff_multiplier": 0.5},
            {"jitter_factor": 1.5},
            {"max_consecutive_failures": 0},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            ConnectionConfig(**overrides)


class TestLoadClientSettings:
    """JSON settings files."""

    def test_load(self, tmp_path):
        path = tmp_path / "gamelink.json"
        path.write_text(
            json.dumps(
                {
                    "server": {"url": "http://game.example:4000", "authToken": "jwt"},
                    "connection": {"maxDelayMs": 8000},
                }
            )
        )

        settings = load_client_settings(path)

        assert settings.server.url == "http://game.example:4000"
        assert settings.server.auth_token == "jwt"
        assert settings.connection.max_delay_ms == 8000
        assert settings.connection.initial_delay_ms == 1000

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_client_settings(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(json.JSONDecodeError):
            load_client_settings(path)

    def test_invalid_structure(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"connection": {"jitterFactor": 3}}))
        with pytest.raises(ValidationError):
            load_client_settings(path)


class TestSettingsFromEnv:
    """GAMELINK_* variables."""

    def test_empty_environment_gives_defaults(self):
        assert settings_from_env({}) == ClientSettings()

    def test_reads_variables(self):
        settings = settings_from_env(
            {
                "GAMELINK_SERVER_URL": "https://cards.example",
                "GAMELINK_AUTH_TOKEN": "abc",
                "GAMELINK_TRANSPORTS": "websocket, polling",
                "GAMELINK_MAX_DELAY_MS": "5000",
                "GAMELINK_JITTER_FACTOR": "0.1",
                "UNRELATED": "x",
            }
        )

        assert settings.server.url == "https://cards.example"
        assert settings.server.auth_token == "abc"
        assert settings.server.transports == ["websocket", "polling"]
        assert settings.connection.max_delay_ms == 5000
        assert settings.connection.jitter_factor == 0.1

    def test_invalid_value_raises_config_error(self):
        with pytest.raises(ConfigError):
            settings_from_env({"GAMELINK_MAX_DELAY_MS": "soon"})
