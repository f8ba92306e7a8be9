"""gamelink: resilient Socket.IO connection layer for a turn-based card game client."""

from gamelink.config import ClientSettings, ConnectionConfig, ServerConfig
from gamelink.connection import ConnectionManager
from gamelink.domain.types import ConnectionMetrics, ConnectionSnapshot, ConnectionState

__all__ = [
    "ClientSettings",
    "ConnectionConfig",
    "ServerConfig",
    "ConnectionManager",
    "ConnectionMetrics",
    "ConnectionSnapshot",
    "ConnectionState",
]
