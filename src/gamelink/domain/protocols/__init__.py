"""Domain protocols - interfaces for all implementations.

Using protocols lets the connection manager run against the real Socket.IO
adapter or a synthetic transport in tests without knowing which one it has.
"""

from gamelink.domain.protocols.transport import EventHandler, Transport

__all__ = [
    "EventHandler",
    "Transport",
]
