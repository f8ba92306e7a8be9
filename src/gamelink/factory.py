"""Factory helpers for constructing configured connection managers."""

from __future__ import annotations

from typing import Callable, Optional

from gamelink.config import ClientSettings, ServerConfig
from gamelink.connection import ConnectionManager
from gamelink.domain.events import EventBus
from gamelink.domain.protocols import Transport
from gamelink.domain.types import ConnectionSnapshot
from gamelink.logger import get_logger
from gamelink.transport import SocketIOTransport

logger = get_logger("factory")


class ConnectionFactory:
    """Create `ConnectionManager` instances wired to a Socket.IO transport."""

    def create_transport(self, server: ServerConfig, *, timeout_ms: int = 10000) -> SocketIOTransport:
        """Create the Socket.IO transport for a server configuration."""
        transport = SocketIOTransport.from_config(server, wait_timeout=timeout_ms / 1000)
        logger.debug(f"Created SocketIOTransport for {server.url}")
        return transport

    def create_manager(
        self,
        settings: Optional[ClientSettings] = None,
        *,
        transport: Optional[Transport] = None,
        event_bus: Optional[EventBus] = None,
        on_state_change: Optional[Callable[[ConnectionSnapshot], None]] = None,
    ) -> ConnectionManager:
        """
        Create a connection manager for the provided settings.

        Args:
            settings: Client settings (defaults used if omitted).
            transport: Transport to drive instead of a new SocketIOTransport.
            event_bus: Bus that receives connection events.
            on_state_change: Optional callback invoked with a snapshot on each state change.

        Returns:
            Configured `ConnectionManager`; call `connect()` to start it.
        """
        settings = settings or ClientSettings()
        if transport is None:
            transport = self.create_transport(
                settings.server,
                timeout_ms=settings.connection.connection_timeout_ms,
            )

        manager = ConnectionManager(
            transport,
            settings.connection,
            event_bus=event_bus,
            on_state_change=on_state_change,
        )
        logger.debug(f"Created ConnectionManager for {settings.server.url}")
        return manager
