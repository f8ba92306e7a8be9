"""Event types published by the connection manager."""

import time
from dataclasses import dataclass, field
from typing import Optional

from gamelink.domain.types.connection import ConnectionMetrics, ConnectionState


@dataclass
class Event:
    """Base class for all events.

    The timestamp field is automatically set when the event is created.
    """

    timestamp: float = field(default_factory=time.time, init=False)
    """Timestamp when the event was created (Unix timestamp)."""


@dataclass
class ConnectionStateChanged(Event):
    """Published whenever the connection state changes."""

    state: ConnectionState
    previous_state: Optional[ConnectionState] = None
    error_message: Optional[str] = None


@dataclass
class ReconnectScheduled(Event):
    """Published when a reconnection attempt has been armed.

    Attributes:
        attempt: Ordinal of the upcoming attempt (1-based)
        delay_ms: Milliseconds until the attempt starts
        circuit_breaker: Whether the delay is the breaker cooldown
    """

    attempt: int
    delay_ms: int
    circuit_breaker: bool = False


@dataclass
class CircuitBreakerTripped(Event):
    """Published when consecutive failures reach the breaker threshold."""

    consecutive_failures: int
    until: int
    """Millisecond timestamp at which the cooldown ends."""


@dataclass
class MetricsUpdated(Event):
    """Published after each heartbeat response."""

    metrics: ConnectionMetrics
