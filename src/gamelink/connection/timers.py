"""Cancellable one-shot timers for the connection stack."""

import asyncio
from typing import Callable, Optional

from gamelink.logger import get_logger

logger = get_logger("connection.timers")


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class ScheduledTask:
    """A single pending callback, owned by whichever subsystem armed it.

    Scheduling again replaces the pending callback. ``cancel()`` is idempotent
    and safe to call from inside the callback itself.
    """

    def __init__(self, name: str):
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self._deadline: Optional[float] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_pending(self) -> bool:
        """Check if a callback is armed and has not fired yet."""
        return self._task is not None and not self._task.done()

    @property
    def remaining_ms(self) -> Optional[int]:
        """Milliseconds until the callback fires, or None if nothing is armed."""
        if not self.is_pending or self._deadline is None:
            return None
        return max(0, int((self._deadline - self._task.get_loop().time()) * 1000))

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> None:
        """
        Arm the timer, replacing anything already pending.

        Args:
            delay_ms: Delay before the callback runs, in milliseconds
            callback: Synchronous callable invoked once the delay elapses
        """
        self.cancel()
        loop = asyncio.get_running_loop()
        self._deadline = loop.time() + delay_ms / 1000
        self._task = loop.create_task(self._run(delay_ms, callback))
        logger.debug(f"{self._name} armed ({delay_ms}ms)")

    def cancel(self) -> bool:
        """
        Disarm the timer.

        Returns:
            True if a pending callback was cancelled
        """
        task, self._task = self._task, None
        self._deadline = None
        if task is None or task.done() or task is _current_task():
            return False
        task.cancel()
        logger.debug(f"{self._name} cancelled")
        return True

    async def _run(self, delay_ms: int, callback: Callable[[], None]) -> None:
        await asyncio.sleep(delay_ms / 1000)

        if self._task is _current_task():
            self._task = None
            self._deadline = None

        try:
            callback()
        except Exception as e:
            logger.error(f"Error in {self._name} callback: {e}")
