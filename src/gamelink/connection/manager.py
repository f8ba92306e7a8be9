"""Connection manager that keeps a single game-server socket alive.

The manager is a reactor over transport events. It owns four pieces of
state, each changed by one subsystem only:

- ConnectionState, held by ConnectionLifecycle
- RetryState, held by RetryController
- queued outbound messages, held by MessageQueue
- ConnectionMetrics, held by Heartbeat

Public operations never raise transport errors; failures become state
transitions and log lines.
"""

import asyncio
from typing import Any, Callable, Optional

from gamelink.config import ConnectionConfig
from gamelink.domain.events import (
    CircuitBreakerTripped,
    ConnectionStateChanged,
    EventBus,
    MetricsUpdated,
    ReconnectScheduled,
)
from gamelink.domain.protocols import EventHandler, Transport
from gamelink.domain.types import (
    ConnectionMetrics,
    ConnectionSnapshot,
    ConnectionState,
    RetryState,
)
from gamelink.errors import ConnectionTimeoutError, TransportError
from gamelink.logger import get_logger
from gamelink.utils import now_ms

from .heartbeat import Heartbeat
from .lifecycle import ConnectionLifecycle
from .queue import MessageQueue
from .retry import RetryController
from .timers import ScheduledTask

logger = get_logger("connection.manager")

SERVER_DISCONNECT = "io server disconnect"
CLIENT_DISCONNECT = "io client disconnect"
PING_TIMEOUT = "ping timeout"
TRANSPORT_CLOSE = "transport close"

PING_EVENT = "ping"


class ConnectionManager:
    """
    Orchestrates transport lifecycle, retries, queued emits and heartbeat.

    Example:
        ```python
        transport = SocketIOTransport("http://localhost:3000", auth={"token": jwt})
        manager = ConnectionManager(transport)
        manager.connect()
        manager.emit("join_game", {"gameId": game_id}, priority=5)
        ```
    """

    def __init__(
        self,
        transport: Transport,
        config: Optional[ConnectionConfig] = None,
        *,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], int] = now_ms,
        retry: Optional[RetryController] = None,
        queue: Optional[MessageQueue] = None,
        on_state_change: Optional[Callable[[ConnectionSnapshot], None]] = None,
    ):
        """
        Initialize connection manager.

        Args:
            transport: Socket capability the manager drives
            config: Connection tuning (defaults used if omitted)
            event_bus: Bus receiving connection events (a private one is created if omitted)
            clock: Millisecond time source shared by all subsystems
            retry: Retry controller override
            queue: Message queue override
            on_state_change: Callback invoked with a snapshot after every state change
        """
        self._config = config or ConnectionConfig()
        self._transport = transport
        self._event_bus = event_bus or EventBus()
        self._clock = clock
        self._on_state_change_cb = on_state_change

        self._retry = retry or RetryController.from_config(self._config, clock=clock)
        self._queue = queue or MessageQueue(
            max_size=self._config.max_queue_size,
            ttl_ms=self._config.message_ttl_ms,
            clock=clock,
        )
        self._lifecycle = ConnectionLifecycle(on_state_change=self._on_state_change)
        self._heartbeat = Heartbeat(
            send_ping=self._send_ping,
            interval_ms=self._config.heartbeat_interval_ms,
            max_missed_pongs=self._config.max_missed_pongs,
            clock=clock,
            on_metrics=self._on_metrics,
            on_unhealthy=self._on_unhealthy,
        )

        self._backoff_timer = ScheduledTask("reconnect-backoff")
        self._timeout_timer = ScheduledTask("connection-timeout")
        self._open_task: Optional[asyncio.Task] = None
        self._close_task: Optional[asyncio.Task] = None

        self._manual_stop = False
        self._auto_retry = True
        self._offline = False
        self._last_connected_at: Optional[int] = None

        self._handlers: dict[str, Callable[..., None]] = {
            "connect": self._handle_connect,
            "disconnect": self._handle_disconnect,
            "connect_error": self._handle_connect_error,
            "reconnect_attempt": self._handle_reconnect_attempt,
            "reconnect": self._handle_reconnect,
            "reconnect_failed": self._handle_reconnect_failed,
            "pong": self._handle_pong,
        }
        for event, handler in self._handlers.items():
            self._transport.on(event, handler)

    # ------------------------------------------------------------------ #
    # Observer surface
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> ConnectionState:
        """Get current connection state."""
        return self._lifecycle.state

    @property
    def is_connected(self) -> bool:
        return self._lifecycle.is_connected

    @property
    def retry_attempt(self) -> int:
        """Ordinal of the reconnection attempt in progress (0 when none)."""
        return self._retry.current_attempt

    @property
    def retry_state(self) -> RetryState:
        return self._retry.state

    @property
    def last_connected_at(self) -> Optional[int]:
        """Millisecond timestamp of the last successful connection."""
        return self._last_connected_at

    @property
    def metrics(self) -> ConnectionMetrics:
        return self._heartbeat.metrics

    @property
    def queued_messages(self) -> int:
        return self._queue.size()

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def heartbeat_running(self) -> bool:
        return self._heartbeat.is_running

    @property
    def reconnect_pending(self) -> bool:
        """Check if an automatic reconnection timer is armed."""
        return self._backoff_timer.is_pending

    def snapshot(self) -> ConnectionSnapshot:
        """Capture the published connection state in one immutable object."""
        retry = self._retry.state
        return ConnectionSnapshot(
            state=self._lifecycle.state,
            retry_attempt=retry.current_attempt,
            consecutive_failures=retry.consecutive_failures,
            circuit_breaker_until=retry.circuit_breaker_until,
            last_connected_at=self._last_connected_at,
            metrics=self._heartbeat.metrics,
            queued_messages=self._queue.size(),
            error_message=self._lifecycle.error_message,
            next_retry_in_ms=self._backoff_timer.remaining_ms,
        )

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def connect(self) -> None:
        """Open the connection. No-op while connecting or connected."""
        state = self._lifecycle.state
        if state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED, ConnectionState.RECONNECTING):
            logger.debug(f"connect() ignored, state is {state.value}")
            return
        if state == ConnectionState.FAILED:
            logger.warning("Connection failed; use reconnect() to try again")
            return

        self._manual_stop = False
        self._auto_retry = True

        if self._offline:
            logger.info("Network offline, connection will open when it returns")
            return

        logger.info("Connecting")
        self._lifecycle.set_state(ConnectionState.CONNECTING)
        self._open_transport()

    def disconnect(self) -> None:
        """Close the connection and suppress automatic retries until connect() or reconnect()."""
        logger.info("Disconnecting")
        self._manual_stop = True
        self._auto_retry = False

        self._stop_timers()
        self._cancel_open()
        self._lifecycle.set_state(ConnectionState.DISCONNECTED)
        self._schedule_close()

    def reconnect(self) -> None:
        """
        Clear retry and circuit-breaker bookkeeping and force a fresh attempt.

        While an armed breaker has not expired, the attempt waits out the rest
        of the cooldown instead of opening the transport immediately.
        """
        logger.info("Manual reconnect requested")
        self._manual_stop = False
        self._auto_retry = True

        self._stop_timers()
        self._cancel_open()
        cooldown_ms = self._retry.cooldown_remaining()
        self._retry.reset()

        if self._offline:
            logger.info("Network offline, reconnect deferred until it returns")
            self._lifecycle.set_state(ConnectionState.DISCONNECTED)
            return

        if cooldown_ms > 0:
            attempt = self._retry.begin_attempt()
            logger.info(f"Circuit breaker cooling down, reconnection attempt {attempt} in {cooldown_ms}ms")
            self._lifecycle.set_state(ConnectionState.RECONNECTING)
            self._backoff_timer.schedule(cooldown_ms, self._on_manual_cooldown_elapsed)
            self._event_bus.publish(
                ReconnectScheduled(attempt=attempt, delay_ms=cooldown_ms, circuit_breaker=True)
            )
            return

        self._lifecycle.set_state(ConnectionState.CONNECTING)
        self._open_transport(close_first=True)

    def emit(self, event: str, payload: Any = None, priority: int = 0) -> None:
        """
        Send an event, or queue it until the connection is back.

        Never raises and never reports whether the event was sent or queued.
        """
        if self._lifecycle.is_connected:
            try:
                self._transport.send(event, payload)
                return
            except Exception as e:
                logger.error(f"Failed to send '{event}', queueing it: {e}")

        self._queue.add(event, payload, priority)
        logger.warning(
            f"Not connected ({self._lifecycle.state.value}); queued '{event}' "
            f"(queue size={self._queue.size()})"
        )

    def on(self, event: str, handler: EventHandler) -> None:
        """Subscribe an application handler to a server event (e.g. ``game_updated``)."""
        self._transport.on(event, handler)

    def handle_event(self, event: str, *args: Any) -> None:
        """Feed a lifecycle event as if the transport had delivered it."""
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug(f"No lifecycle handler for '{event}'")
            return
        handler(*args)

    def notify_offline(self) -> None:
        """Network went away: pause retries without counting a failure."""
        if self._offline:
            return
        self._offline = True
        logger.warning("Network offline")

        self._stop_timers()
        self._cancel_open()
        if self._lifecycle.state != ConnectionState.FAILED:
            self._lifecycle.set_state(ConnectionState.DISCONNECTED)

    def notify_online(self) -> None:
        """Network is back: reopen unless manually stopped or already connected."""
        if not self._offline:
            return
        self._offline = False
        logger.info("Network online")

        if self._manual_stop or not self._auto_retry:
            return
        if self._lifecycle.state in (
            ConnectionState.CONNECTED,
            ConnectionState.CONNECTING,
            ConnectionState.RECONNECTING,
        ):
            return
        if self._transport.connected:
            self._handle_connect()
            return

        if self._retry.is_circuit_open():
            self._schedule_reconnect()
            return
        if self._lifecycle.state != ConnectionState.FAILED:
            self._lifecycle.set_state(ConnectionState.CONNECTING)
        self._open_transport()

    async def shutdown(self) -> None:
        """Disconnect and wait for the transport to finish closing."""
        open_task = self._open_task
        self.disconnect()
        for task in (open_task, self._close_task):
            if task is None:
                continue
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Error during shutdown: {e}")
        self._open_task = None
        self._close_task = None
        # Let cancelled timer and heartbeat tasks unwind
        await asyncio.sleep(0)

    # ------------------------------------------------------------------ #
    # Transport event handlers
    # ------------------------------------------------------------------ #

    def _handle_connect(self, *_: Any) -> None:
        if self._manual_stop:
            logger.debug("Ignoring connect after manual disconnect")
            return
        if self._lifecycle.is_connected:
            logger.debug("Already connected")
            return

        self._offline = False
        self._timeout_timer.cancel()
        self._backoff_timer.cancel()

        # Queued messages go out before anyone observing the state change can emit
        self._flush_queue()
        self._retry.record_success()
        self._auto_retry = True
        self._last_connected_at = self._clock()
        self._lifecycle.set_state(ConnectionState.CONNECTED)
        logger.info("Connected")
        self._heartbeat.start()

    def _handle_connect_error(self, error: Any = None) -> None:
        if self._manual_stop or not self._auto_retry:
            logger.debug(f"Ignoring connection error while retries are off: {error}")
            return
        if self._offline:
            logger.debug(f"Ignoring connection error while offline: {error}")
            return

        self._timeout_timer.cancel()
        self._heartbeat.stop()
        logger.warning(f"Connection error: {error}")

        was_open = self._retry.is_circuit_open()
        if self._retry.record_failure():
            retry = self._retry.state
            self._lifecycle.set_state(
                ConnectionState.FAILED,
                f"Circuit breaker open after {retry.consecutive_failures} consecutive failures",
            )
            if not was_open:
                self._event_bus.publish(
                    CircuitBreakerTripped(
                        consecutive_failures=retry.consecutive_failures,
                        until=retry.circuit_breaker_until or self._clock(),
                    )
                )
        elif self._lifecycle.state != ConnectionState.FAILED:
            self._lifecycle.set_state(ConnectionState.RECONNECTING)

        self._schedule_reconnect()

    def _handle_disconnect(self, reason: Any = None) -> None:
        reason = str(reason) if reason else TRANSPORT_CLOSE
        self._heartbeat.stop()

        if self._manual_stop:
            logger.debug(f"Disconnected after manual stop ({reason})")
            return

        if reason == SERVER_DISCONNECT:
            self._stop_timers()
            self._auto_retry = False
            logger.warning("Server closed the connection; automatic reconnection disabled")
            self._lifecycle.set_state(ConnectionState.FAILED, "Disconnected by server")
            return

        state = self._lifecycle.state
        if reason == CLIENT_DISCONNECT:
            if state == ConnectionState.CONNECTED:
                self._lifecycle.set_state(ConnectionState.DISCONNECTED)
            return

        if state in (ConnectionState.CONNECTING, ConnectionState.RECONNECTING):
            self._handle_connect_error(TransportError(reason))
            return
        if state != ConnectionState.CONNECTED:
            logger.debug(f"Disconnect ({reason}) while {state.value}")
            return

        logger.warning(f"Connection lost ({reason})")
        self._lifecycle.set_state(ConnectionState.DISCONNECTED)
        if not self._offline and self._auto_retry:
            self._schedule_reconnect()

    def _handle_reconnect_attempt(self, attempt: Any = None) -> None:
        if self._manual_stop:
            return
        if attempt is not None:
            self._retry.note_attempt(int(attempt))
        if self._lifecycle.state != ConnectionState.FAILED:
            self._lifecycle.set_state(ConnectionState.RECONNECTING)

    def _handle_reconnect(self, attempt: Any = None) -> None:
        self._handle_connect()

    def _handle_reconnect_failed(self, *_: Any) -> None:
        if self._manual_stop:
            logger.debug("Ignoring reconnect_failed after manual disconnect")
            return
        self._stop_timers()
        self._auto_retry = False
        attempts = self._retry.current_attempt
        logger.error(f"Reconnection failed after {attempts} attempt(s)")
        self._lifecycle.set_state(
            ConnectionState.FAILED, f"Reconnection failed after {attempts} attempt(s)"
        )

    def _handle_pong(self, payload: Any = None) -> None:
        if not self._lifecycle.is_connected:
            logger.debug("Ignoring pong while not connected")
            return
        self._heartbeat.handle_pong(payload)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _flush_queue(self) -> None:
        messages = self._queue.drain()
        if not messages:
            return

        logger.info(f"Flushing {len(messages)} queued message(s)")
        for index, message in enumerate(messages):
            try:
                self._transport.send(message.event, message.payload)
            except Exception as e:
                logger.error(f"Flush interrupted at '{message.event}': {e}")
                for pending in messages[index:]:
                    self._queue.add(pending.event, pending.payload, pending.priority)
                return

    def _schedule_reconnect(self) -> None:
        if not self._retry.should_retry():
            self._handle_reconnect_failed()
            return

        circuit_open = self._retry.is_circuit_open()
        delay = self._retry.next_delay()
        attempt = self._retry.begin_attempt()

        suffix = " (circuit breaker cooldown)" if circuit_open else ""
        logger.info(f"Reconnection attempt {attempt} in {delay}ms{suffix}")
        self._backoff_timer.schedule(delay, self._on_backoff_elapsed)
        self._event_bus.publish(
            ReconnectScheduled(attempt=attempt, delay_ms=delay, circuit_breaker=circuit_open)
        )

    def _on_backoff_elapsed(self) -> None:
        if self._manual_stop or self._offline or not self._auto_retry:
            return
        if self._lifecycle.is_connected:
            return

        logger.info(f"Starting reconnection attempt {self._retry.current_attempt}")
        if self._lifecycle.state != ConnectionState.FAILED:
            self._lifecycle.set_state(ConnectionState.RECONNECTING)
        self._open_transport()

    def _on_manual_cooldown_elapsed(self) -> None:
        if self._manual_stop or self._offline or self._lifecycle.is_connected:
            return
        logger.info(f"Starting reconnection attempt {self._retry.current_attempt}")
        self._open_transport(close_first=True)

    def _on_connection_timeout(self) -> None:
        if self._manual_stop or self._lifecycle.is_connected:
            return

        timeout_ms = self._config.connection_timeout_ms
        logger.warning(f"Connection attempt timed out after {timeout_ms}ms")
        self._cancel_open()
        self._schedule_close()
        self._handle_connect_error(ConnectionTimeoutError(timeout_ms))

    def _on_unhealthy(self) -> None:
        logger.warning("Heartbeat detected a dead connection")
        self._handle_disconnect(PING_TIMEOUT)
        self._schedule_close()

    def _on_state_change(
        self,
        state: ConnectionState,
        previous: ConnectionState,
        error_message: Optional[str],
    ) -> None:
        self._event_bus.publish(
            ConnectionStateChanged(state=state, previous_state=previous, error_message=error_message)
        )
        if self._on_state_change_cb:
            self._on_state_change_cb(self.snapshot())

    def _on_metrics(self, metrics: ConnectionMetrics) -> None:
        self._event_bus.publish(MetricsUpdated(metrics=metrics))

    def _send_ping(self, sent_at: int) -> None:
        try:
            self._transport.send(PING_EVENT, sent_at)
        except Exception as e:
            logger.warning(f"Failed to send heartbeat probe: {e}")

    def _open_transport(self, close_first: bool = False) -> None:
        self._cancel_open()
        self._timeout_timer.schedule(self._config.connection_timeout_ms, self._on_connection_timeout)
        self._open_task = asyncio.get_running_loop().create_task(self._open(close_first))

    async def _open(self, close_first: bool) -> None:
        try:
            if close_first:
                await self._transport.close()
            await self._transport.open()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._handle_connect_error(e)

    def _cancel_open(self) -> None:
        task, self._open_task = self._open_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _schedule_close(self) -> None:
        self._close_task = asyncio.get_running_loop().create_task(self._close())

    async def _close(self) -> None:
        try:
            await self._transport.close()
        except Exception as e:
            logger.error(f"Error closing transport: {e}")

    def _stop_timers(self) -> None:
        self._backoff_timer.cancel()
        self._timeout_timer.cancel()
        self._heartbeat.stop()
