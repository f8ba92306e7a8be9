"""
Ordered background sender for a socket whose emit is a coroutine.

The connection manager hands events over synchronously; this outbox keeps
them in a FIFO and a single worker task awaits each emit in turn, so events
reach the socket in the order they were handed over.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from gamelink.logger import get_logger

logger = get_logger("transport.outbox")


@dataclass
class OutboundEvent:
    """An event waiting for the worker."""

    event: str
    payload: Any


class Outbox:
    """
    FIFO of outbound events drained by one worker task.

    Example:
        ```python
        outbox = Outbox(client_emit, name="socketio-outbox")
        outbox.put("play_card", {"cardId": "7H"})
        await outbox.wait_until_empty(timeout=1.0)
        await outbox.stop()
        ```

    Error Handling:
        - Emit exceptions are logged and don't stop the worker
        - The worker is started lazily on the first put()
    """

    def __init__(
        self,
        emit: Callable[[str, Any], Awaitable[None]],
        *,
        name: str = "Outbox",
    ):
        """
        Initialize the outbox.

        Args:
            emit: Coroutine function performing the actual socket write
            name: Human-readable name for logging
        """
        self._emit = emit
        self._name = name
        self._queue: asyncio.Queue[OutboundEvent] = asyncio.Queue()
        self._worker_task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        """Check if the worker task is alive."""
        return self._worker_task is not None and not self._worker_task.done()

    @property
    def pending(self) -> int:
        """Get the number of events not yet written."""
        return self._queue.qsize()

    def start(self) -> None:
        """Start the worker task. No-op if already running."""
        if self.is_running:
            return
        self._worker_task = asyncio.get_running_loop().create_task(self._worker())
        logger.debug(f"{self._name} started")

    def put(self, event: str, payload: Any) -> None:
        """Append an event without waiting for it to be written."""
        self._queue.put_nowait(OutboundEvent(event=event, payload=payload))
        self.start()
        logger.debug(f"{self._name}: queued '{event}' (pending={self._queue.qsize()})")

    async def stop(self) -> None:
        """
        Cancel the worker and wait for it to exit.

        Events still pending are kept and written once the worker restarts.
        """
        task, self._worker_task = self._worker_task, None
        if task is None or task.done():
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug(f"{self._name} stopped")

    async def wait_until_empty(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every queued event has been written.

        Returns:
            True if the outbox drained, False on timeout
        """
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"{self._name}: timeout waiting for outbox to drain")
            return False

    async def _worker(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                await self._emit(item.event, item.payload)
            except asyncio.CancelledError:
                # asyncio.Queue cannot re-insert at the head
                logger.warning(f"{self._name}: '{item.event}' interrupted by shutdown")
                self._queue.task_done()
                raise
            except Exception as e:
                logger.error(f"{self._name}: failed to emit '{item.event}': {e}")
            self._queue.task_done()
