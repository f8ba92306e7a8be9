"""Exception types raised inside gamelink.

None of these reach callers of ``ConnectionManager``: transport failures are
absorbed and turned into state transitions. They exist so adapters and the
config layer can classify what went wrong.
"""


class GamelinkError(Exception):
    """Base class for gamelink errors."""


class ConfigError(GamelinkError):
    """Settings could not be assembled from the environment or a file."""


class TransportError(GamelinkError):
    """The underlying socket failed to open, send or close."""


class ConnectionTimeoutError(TransportError):
    """A connection attempt did not complete within the configured timeout."""

    def __init__(self, timeout_ms: int):
        super().__init__(f"Connection attempt timed out after {timeout_ms}ms")
        self.timeout_ms = timeout_ms
