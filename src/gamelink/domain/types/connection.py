"""Connection-related domain types."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

__all__ = [
    "ConnectionState",
    "ConnectionMetrics",
    "RetryState",
    "QueuedMessage",
    "ConnectionSnapshot",
]


class ConnectionState(Enum):
    """State of the game server connection.

    Exactly one value is current at any time. ``FAILED`` is left only through a
    manual reconnect or a successful attempt after the circuit-breaker cooldown.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


@dataclass(frozen=True)
class ConnectionMetrics:
    """Health figures derived from heartbeat probes."""

    latency_ms: int = 0
    last_ping_time: Optional[int] = None
    packet_loss: float = 0.0


@dataclass(frozen=True)
class RetryState:
    """Reconnection bookkeeping owned by the retry controller."""

    consecutive_failures: int = 0
    circuit_breaker_until: Optional[int] = None
    current_attempt: int = 0


@dataclass(frozen=True)
class QueuedMessage:
    """An outbound event waiting for the connection to come back."""

    event: str
    payload: Any
    priority: int = 0
    enqueued_at: int = 0
    sequence: int = field(default=0, compare=False)


@dataclass(frozen=True)
class ConnectionSnapshot:
    """Read-only view of everything the connection manager publishes."""

    state: ConnectionState
    retry_attempt: int = 0
    consecutive_failures: int = 0
    circuit_breaker_until: Optional[int] = None
    last_connected_at: Optional[int] = None
    metrics: ConnectionMetrics = field(default_factory=ConnectionMetrics)
    queued_messages: int = 0
    error_message: Optional[str] = None
    next_retry_in_ms: Optional[int] = None

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    @property
    def is_connecting(self) -> bool:
        return self.state == ConnectionState.CONNECTING

    @property
    def is_reconnecting(self) -> bool:
        return self.state == ConnectionState.RECONNECTING

    @property
    def is_disconnected(self) -> bool:
        return self.state == ConnectionState.DISCONNECTED

    @property
    def is_failed(self) -> bool:
        return self.state == ConnectionState.FAILED
