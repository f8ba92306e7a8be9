"""Event system for decoupled component communication.

Example:
    ```python
    from gamelink.domain.events import EventBus, ConnectionStateChanged

    event_bus = EventBus()
    event_bus.subscribe(ConnectionStateChanged, lambda e: print(e.state.value))
    ```
"""

from .bus import EventBus
from .types import (
    CircuitBreakerTripped,
    ConnectionStateChanged,
    Event,
    MetricsUpdated,
    ReconnectScheduled,
)

__all__ = [
    "EventBus",
    "Event",
    "ConnectionStateChanged",
    "ReconnectScheduled",
    "CircuitBreakerTripped",
    "MetricsUpdated",
]
