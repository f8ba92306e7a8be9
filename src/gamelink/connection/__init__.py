"""Connection resilience for the game server socket.

This package provides:
- Connection lifecycle state (ConnectionLifecycle)
- Backoff and circuit breaking (RetryController)
- Offline message queueing (MessageQueue)
- Heartbeat latency probes (Heartbeat)
- The orchestrating reactor (ConnectionManager)
"""

from .heartbeat import Heartbeat
from .lifecycle import ConnectionLifecycle
from .manager import (
    CLIENT_DISCONNECT,
    PING_TIMEOUT,
    SERVER_DISCONNECT,
    TRANSPORT_CLOSE,
    ConnectionManager,
)
from .queue import MessageQueue
from .retry import RetryController
from .timers import ScheduledTask

__all__ = [
    "ConnectionManager",
    "ConnectionLifecycle",
    "RetryController",
    "MessageQueue",
    "Heartbeat",
    "ScheduledTask",
    "SERVER_DISCONNECT",
    "CLIENT_DISCONNECT",
    "PING_TIMEOUT",
    "TRANSPORT_CLOSE",
]
