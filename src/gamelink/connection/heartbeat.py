"""Heartbeat probes and latency metrics for a live connection."""

import asyncio
from typing import Any, Callable, Mapping, Optional

from gamelink.domain.types import ConnectionMetrics
from gamelink.logger import get_logger
from gamelink.utils import now_ms

logger = get_logger("connection.heartbeat")


class Heartbeat:
    """Sends periodic ``ping`` probes and derives ConnectionMetrics from the responses."""

    def __init__(
        self,
        send_ping: Callable[[int], None],
        interval_ms: int = 10000,
        max_missed_pongs: int = 3,
        clock: Callable[[], int] = now_ms,
        on_metrics: Optional[Callable[[ConnectionMetrics], None]] = None,
        on_unhealthy: Optional[Callable[[], None]] = None,
    ):
        """
        Initialize heartbeat.

        Args:
            send_ping: Callable that emits a probe carrying the client send time
            interval_ms: Milliseconds between probes
            max_missed_pongs: Consecutive unanswered probes before the connection is
                reported unhealthy (0 disables the check)
            clock: Millisecond time source
            on_metrics: Callback invoked with fresh metrics after each response
            on_unhealthy: Callback invoked once when too many probes go unanswered
        """
        self._send_ping = send_ping
        self._interval_ms = interval_ms
        self._max_missed_pongs = max_missed_pongs
        self._clock = clock
        self._on_metrics = on_metrics
        self._on_unhealthy = on_unhealthy

        self._task: Optional[asyncio.Task] = None
        self._metrics = ConnectionMetrics()
        self._pending_ping: Optional[int] = None
        self._sent = 0
        self._lost = 0
        self._missed = 0

    @property
    def metrics(self) -> ConnectionMetrics:
        return self._metrics

    @property
    def is_running(self) -> bool:
        """Check if the probe loop is active."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start a fresh probe loop. No-op if one is already running."""
        if self.is_running:
            logger.debug("Heartbeat already running")
            return

        self._pending_ping = None
        self._sent = 0
        self._lost = 0
        self._missed = 0
        self._task = asyncio.get_running_loop().create_task(self._probe_loop())
        logger.debug(f"Heartbeat started (interval={self._interval_ms}ms)")

    def stop(self) -> None:
        """Cancel the probe loop. Safe to call repeatedly."""
        task, self._task = self._task, None
        self._pending_ping = None
        if task is not None and not task.done():
            task.cancel()
            logger.debug("Heartbeat stopped")

    def probe(self) -> None:
        """Send one probe, first accounting for an unanswered previous probe."""
        if self._pending_ping is not None:
            self._lost += 1
            self._missed += 1
            logger.debug(f"No pong for probe sent at {self._pending_ping} (missed={self._missed})")

        if self._max_missed_pongs and self._missed >= self._max_missed_pongs:
            logger.warning(f"{self._missed} consecutive probes unanswered, connection unhealthy")
            self._pending_ping = None
            self._missed = 0
            if self._on_unhealthy:
                try:
                    self._on_unhealthy()
                except Exception as e:
                    logger.error(f"Error in unhealthy callback: {e}")
            return

        sent_at = self._clock()
        self._pending_ping = sent_at
        self._sent += 1
        self._metrics = ConnectionMetrics(
            latency_ms=self._metrics.latency_ms,
            last_ping_time=sent_at,
            packet_loss=self._packet_loss(),
        )
        self._send_ping(sent_at)

    def handle_pong(self, payload: Any = None) -> Optional[ConnectionMetrics]:
        """
        Record a probe response against the outstanding probe.

        Latency is always ``receive time - probe send time``. A numeric payload
        is the server's own clock and plays no part in the measurement. A
        mapping carrying ``clientTime`` that does not match the outstanding
        probe is a late answer to a probe already counted as lost.

        Args:
            payload: Whatever the server sent with the pong

        Returns:
            Updated metrics, or None if no outstanding probe matches
        """
        received_at = self._clock()
        sent_at = self._pending_ping
        if sent_at is None:
            logger.debug("Ignoring pong with no outstanding probe")
            return None

        echoed = _echoed_client_time(payload)
        if echoed is not None and echoed != sent_at:
            logger.debug(f"Ignoring stale pong for probe sent at {echoed}")
            return None

        self._pending_ping = None
        self._missed = 0

        self._metrics = ConnectionMetrics(
            latency_ms=max(0, int(received_at - sent_at)),
            last_ping_time=sent_at,
            packet_loss=self._packet_loss(),
        )
        logger.debug(f"Latency {self._metrics.latency_ms}ms")

        if self._on_metrics:
            try:
                self._on_metrics(self._metrics)
            except Exception as e:
                logger.error(f"Error in metrics callback: {e}")
        return self._metrics

    def _packet_loss(self) -> float:
        completed = self._sent - (1 if self._pending_ping is not None else 0)
        if completed <= 0:
            return 0.0
        return round(self._lost / completed, 4)

    async def _probe_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval_ms / 1000)
                self.probe()
        except asyncio.CancelledError:
            logger.debug("Heartbeat loop cancelled")
            raise


def _echoed_client_time(payload: Any) -> Optional[int]:
    if not isinstance(payload, Mapping):
        return None
    value = payload.get("clientTime")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return None
