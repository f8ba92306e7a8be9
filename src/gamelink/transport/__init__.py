"""Transport adapters implementing the Transport protocol."""

from .outbox import Outbox
from .socketio import SocketIOTransport, normalize_disconnect_reason

__all__ = [
    "Outbox",
    "SocketIOTransport",
    "normalize_disconnect_reason",
]
