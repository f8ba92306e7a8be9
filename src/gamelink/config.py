"""Client settings for gamelink.

Settings come from a JSON file (``load_client_settings``) or from ``GAMELINK_*``
environment variables (``settings_from_env``). Connection tuning accepts both
snake_case names and the camelCase names used by the game client, e.g.::

    {
        "server": {"url": "http://localhost:3000", "authToken": "..."},
        "connection": {"initialDelayMs": 500, "maxConsecutiveFailures": 5}
    }
"""

import json
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from gamelink.errors import ConfigError
from gamelink.logger import get_logger

logger = get_logger("config")

ENV_PREFIX = "GAMELINK_"


class ConnectionConfig(BaseModel):
    """Tuning for reconnection, circuit breaking, heartbeat and queueing. All durations in ms."""

    initial_delay_ms: int = Field(1000, alias="initialDelayMs", gt=0)
    max_delay_ms: int = Field(30000, alias="maxDelayMs", gt=0)
    backoff_multiplier: float = Field(2.0, alias="backoffMultiplier")
    jitter_factor: float = Field(0.25, alias="jitterFactor")
    max_consecutive_failures: int = Field(10, alias="maxConsecutiveFailures", ge=1)
    circuit_breaker_cooldown_ms: int = Field(5 * 60 * 1000, alias="circuitBreakerCooldownMs", gt=0)
    heartbeat_interval_ms: int = Field(10000, alias="heartbeatIntervalMs", gt=0)
    connection_timeout_ms: int = Field(10000, alias="connectionTimeoutMs", gt=0)

    max_reconnect_attempts: Optional[int] = Field(None, alias="maxReconnectAttempts", ge=1)
    max_cooldown_retries: Optional[int] = Field(None, alias="maxCooldownRetries", ge=0)
    max_missed_pongs: int = Field(3, alias="maxMissedPongs", ge=0)
    max_queue_size: Optional[int] = Field(None, alias="maxQueueSize", ge=1)
    message_ttl_ms: Optional[int] = Field(None, alias="messageTtlMs", gt=0)

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="after")
    def _validate_ranges(self) -> "ConnectionConfig":
        if self.initial_delay_ms > self.max_delay_ms:
            raise ValueError("initial_delay_ms cannot exceed max_delay_ms")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")
        if not 0 <= self.jitter_factor <= 1:
            raise ValueError("jitter_factor must be between 0 and 1")
        return self


class ServerConfig(BaseModel):
    """Where and how to reach the game server's Socket.IO endpoint."""

    url: str = Field("http://localhost:3000", description="Base URL of the game server")
    namespace: str = Field("/", description="Socket.IO namespace")
    socketio_path: str = Field("socket.io", alias="socketioPath")
    transports: list[str] = Field(default_factory=lambda: ["websocket"])
    auth_token: Optional[str] = Field(None, alias="authToken", description="Session JWT sent as Socket.IO auth")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ClientSettings(BaseModel):
    """Complete client configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)

    model_config = ConfigDict(frozen=True)


def load_client_settings(config_path: str | Path) -> ClientSettings:
    """
    Load client settings from a JSON file.

    Args:
        config_path: Path to the JSON settings file

    Returns:
        ClientSettings: Parsed settings

    Raises:
        FileNotFoundError: If the file doesn't exist
        json.JSONDecodeError: If the file is not valid JSON
        ValidationError: If the structure or values are invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        error_msg = f"Client settings file not found: {config_path}"
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)

    logger.info(f"Loading client settings from: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in settings file {config_path}: {e}")
        raise

    try:
        settings = ClientSettings(**data)
    except ValidationError as e:
        logger.error(f"Invalid settings structure in {config_path}: {e}")
        raise

    logger.debug(f"Loaded settings for {settings.server.url}")
    return settings


_SERVER_ENV = {
    "SERVER_URL": "url",
    "NAMESPACE": "namespace",
    "SOCKETIO_PATH": "socketio_path",
    "AUTH_TOKEN": "auth_token",
}


def settings_from_env(environ: Optional[Mapping[str, str]] = None) -> ClientSettings:
    """
    Build settings from ``GAMELINK_*`` environment variables.

    Connection fields map by upper-casing their name, e.g. ``GAMELINK_MAX_DELAY_MS``.
    ``GAMELINK_TRANSPORTS`` is a comma-separated list.

    Raises:
        ConfigError: If a variable holds a value the models reject
    """
    env = os.environ if environ is None else environ

    server: dict[str, object] = {}
    for suffix, field_name in _SERVER_ENV.items():
        value = env.get(f"{ENV_PREFIX}{suffix}")
        if value:
            server[field_name] = value
    transports = env.get(f"{ENV_PREFIX}TRANSPORTS", "")
    if transports.strip():
        server["transports"] = [t.strip() for t in transports.split(",") if t.strip()]

    connection: dict[str, object] = {}
    for field_name in ConnectionConfig.model_fields:
        value = env.get(f"{ENV_PREFIX}{field_name.upper()}")
        if value is not None and value != "":
            connection[field_name] = value

    try:
        return ClientSettings(
            server=ServerConfig(**server),
            connection=ConnectionConfig(**connection),
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid {ENV_PREFIX}* environment settings: {e}") from e
