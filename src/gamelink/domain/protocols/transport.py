"""Transport protocol."""

from typing import Any, Callable, Protocol

__all__ = ["EventHandler", "Transport"]

EventHandler = Callable[..., None]


class Transport(Protocol):
    """Bidirectional event-based connection to the game server.

    The connection manager only needs two capabilities from a transport:
    subscribing to an event kind and sending an event. Lifecycle events are
    delivered through the same subscription mechanism:

    - ``connect``: the socket is open
    - ``disconnect(reason)``: the socket closed; ``reason`` follows Socket.IO
      wording (``"io server disconnect"``, ``"io client disconnect"``,
      ``"transport close"``, ``"ping timeout"``)
    - ``connect_error(error)``: an attempt failed
    - ``reconnect_attempt(n)``, ``reconnect(n)``, ``reconnect_failed``: only
      from transports that run their own retry loop
    - ``pong(timestamp)``: response to a heartbeat probe
    """

    @property
    def connected(self) -> bool:
        """Check if the socket is currently open."""
        ...

    def on(self, event: str, handler: EventHandler) -> None:
        """Register ``handler`` for ``event``. Handlers must be synchronous."""
        ...

    async def open(self) -> None:
        """Start a connection attempt.

        Raises on failure; success is reported through the ``connect`` event.
        """
        ...

    async def close(self) -> None:
        """Close the socket. Must not raise if already closed."""
        ...

    def send(self, event: str, payload: Any) -> None:
        """Hand an event to the socket without waiting for delivery.

        Events passed to consecutive ``send`` calls are written in call order.
        """
        ...
