"""Outbound message queue used while the connection is down."""

import itertools
from typing import Any, Callable, Optional

from gamelink.domain.types import QueuedMessage
from gamelink.logger import get_logger
from gamelink.utils import now_ms

logger = get_logger("connection.queue")


class MessageQueue:
    """Priority queue of events waiting to be sent.

    Higher priority drains first; within a priority messages keep insertion
    order. Nothing is deduplicated. By default the queue is unbounded and
    messages never expire; ``max_size`` and ``ttl_ms`` opt into eviction.
    """

    def __init__(
        self,
        max_size: Optional[int] = None,
        ttl_ms: Optional[int] = None,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize message queue.

        Args:
            max_size: Maximum number of queued messages (None = unbounded)
            ttl_ms: Age after which a message is discarded (None = never)
            clock: Millisecond time source
        """
        self._max_size = max_size
        self._ttl_ms = ttl_ms
        self._clock = clock
        self._messages: list[QueuedMessage] = []
        self._sequence = itertools.count()

    def add(self, event: str, payload: Any, priority: int = 0) -> QueuedMessage:
        """
        Append a message.

        Returns:
            The queued message
        """
        self._discard_expired()

        if self._max_size is not None and len(self._messages) >= self._max_size:
            self._evict_one()

        message = QueuedMessage(
            event=event,
            payload=payload,
            priority=priority,
            enqueued_at=self._clock(),
            sequence=next(self._sequence),
        )
        self._messages.append(message)
        logger.debug(f"Queued '{event}' (priority={priority}, size={len(self._messages)})")
        return message

    def get_all(self) -> list[QueuedMessage]:
        """Return queued messages by priority descending, then insertion order, without removing them."""
        self._discard_expired()
        return sorted(self._messages, key=lambda m: (-m.priority, m.sequence))

    def clear(self) -> None:
        """Remove every queued message."""
        if self._messages:
            logger.debug(f"Cleared {len(self._messages)} queued message(s)")
        self._messages = []

    def drain(self) -> list[QueuedMessage]:
        """get_all() and clear() as a single step."""
        messages = self.get_all()
        self.clear()
        return messages

    def size(self) -> int:
        self._discard_expired()
        return len(self._messages)

    def is_empty(self) -> bool:
        return self.size() == 0

    def __len__(self) -> int:
        return self.size()

    def _evict_one(self) -> None:
        # Oldest message of the lowest priority tier
        index = min(
            range(len(self._messages)),
            key=lambda i: (self._messages[i].priority, self._messages[i].sequence),
        )
        victim = self._messages.pop(index)
        logger.warning(
            f"Message queue full ({self._max_size}), dropped '{victim.event}' "
            f"(priority={victim.priority})"
        )

    def _discard_expired(self) -> None:
        if self._ttl_ms is None or not self._messages:
            return

        now = self._clock()
        kept = [m for m in self._messages if now - m.enqueued_at < self._ttl_ms]
        expired = len(self._messages) - len(kept)
        if expired:
            logger.warning(f"Dropped {expired} expired queued message(s) (ttl={self._ttl_ms}ms)")
            self._messages = kept
