"""Shared domain types."""

from gamelink.domain.types.connection import (
    ConnectionMetrics,
    ConnectionSnapshot,
    ConnectionState,
    QueuedMessage,
    RetryState,
)

__all__ = [
    "ConnectionState",
    "ConnectionMetrics",
    "ConnectionSnapshot",
    "QueuedMessage",
    "RetryState",
]
