"""Socket.IO transport backed by python-socketio's AsyncClient."""

from collections import defaultdict
from typing import Any, Optional

import socketio
from socketio import exceptions as socketio_exceptions

from gamelink.config import ServerConfig
from gamelink.domain.protocols import EventHandler
from gamelink.errors import TransportError
from gamelink.logger import get_logger

from .outbox import Outbox

logger = get_logger("transport.socketio")

# python-socketio reasons -> Socket.IO wire wording used by the connection manager
_DISCONNECT_REASONS = {
    "server disconnect": "io server disconnect",
    "client disconnect": "io client disconnect",
    "transport error": "transport error",
}
_DEFAULT_REASON = "transport close"


def normalize_disconnect_reason(reason: Any) -> str:
    """Translate a python-socketio disconnect reason into Socket.IO wording."""
    if not reason:
        return _DEFAULT_REASON
    return _DISCONNECT_REASONS.get(str(reason), str(reason))


class SocketIOTransport:
    """
    Transport for a Socket.IO game server.

    The client's own reconnection loop is disabled; the connection manager
    decides when to open again. Outgoing events pass through an Outbox so
    that synchronous ``send`` calls keep their order.
    """

    def __init__(
        self,
        url: str,
        *,
        namespace: str = "/",
        socketio_path: str = "socket.io",
        transports: Optional[list[str]] = None,
        auth: Optional[dict[str, Any]] = None,
        wait_timeout: float = 10.0,
        client: Optional[socketio.AsyncClient] = None,
    ):
        """
        Initialize Socket.IO transport.

        Args:
            url: Base URL of the game server
            namespace: Socket.IO namespace to join
            socketio_path: Endpoint path on the server
            transports: Engine.IO transports to allow (default websocket only)
            auth: Auth payload sent with the handshake, e.g. ``{"token": jwt}``
            wait_timeout: Seconds to wait for the namespace handshake
            client: Preconfigured AsyncClient (mainly for tests)
        """
        self._url = url
        self._namespace = namespace
        self._socketio_path = socketio_path
        self._transports = transports or ["websocket"]
        self._auth = auth
        self._wait_timeout = wait_timeout
        self._client = client or socketio.AsyncClient(
            reconnection=False,
            logger=False,
            engineio_logger=False,
        )
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._outbox = Outbox(self._emit, name="socketio-outbox")

        self._client.on("connect", self._on_connect, namespace=namespace)
        self._client.on("disconnect", self._on_disconnect, namespace=namespace)
        self._client.on("*", self._on_any, namespace=namespace)

    @classmethod
    def from_config(cls, config: ServerConfig, wait_timeout: float = 10.0) -> "SocketIOTransport":
        """Build a transport from ServerConfig."""
        auth = {"token": config.auth_token} if config.auth_token else None
        return cls(
            config.url,
            namespace=config.namespace,
            socketio_path=config.socketio_path,
            transports=list(config.transports),
            auth=auth,
            wait_timeout=wait_timeout,
        )

    @property
    def connected(self) -> bool:
        return bool(self._client.connected)

    @property
    def url(self) -> str:
        return self._url

    def on(self, event: str, handler: EventHandler) -> None:
        self._handlers[event].append(handler)

    async def open(self) -> None:
        """
        Connect to the server.

        Raises:
            TransportError: If the handshake fails
        """
        if self._client.connected:
            await self._client.disconnect()

        logger.info(f"Opening Socket.IO connection to {self._url} (namespace={self._namespace})")
        try:
            await self._client.connect(
                self._url,
                auth=self._auth,
                transports=self._transports,
                namespaces=[self._namespace],
                socketio_path=self._socketio_path,
                wait_timeout=self._wait_timeout,
            )
        except socketio_exceptions.ConnectionError as e:
            raise TransportError(f"Failed to connect to {self._url}: {e}") from e

    async def close(self) -> None:
        await self._outbox.stop()
        try:
            await self._client.disconnect()
        except Exception as e:
            logger.warning(f"Error while closing Socket.IO client: {e}")

    def send(self, event: str, payload: Any) -> None:
        self._outbox.put(event, payload)

    async def _emit(self, event: str, payload: Any) -> None:
        await self._client.emit(event, payload, namespace=self._namespace)

    def _on_connect(self) -> None:
        logger.info(f"Socket.IO connected to {self._url}")
        self._dispatch("connect")

    def _on_disconnect(self, reason: Any = None) -> None:
        normalized = normalize_disconnect_reason(reason)
        logger.info(f"Socket.IO disconnected ({normalized})")
        self._dispatch("disconnect", normalized)

    def _on_any(self, event: str, *args: Any) -> None:
        self._dispatch(event, *args)

    def _dispatch(self, event: str, *args: Any) -> None:
        handlers = self._handlers.get(event)
        if not handlers:
            logger.debug(f"No handlers for '{event}'")
            return
        for handler in list(handlers):
            try:
                handler(*args)
            except Exception as e:
                logger.error(f"Error in '{event}' handler: {e}")
