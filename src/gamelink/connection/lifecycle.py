"""Connection lifecycle state for the game server socket."""

from typing import Callable, Optional

from gamelink.domain.types import ConnectionState
from gamelink.logger import get_logger

logger = get_logger("connection.lifecycle")

StateChangeCallback = Callable[[ConnectionState, ConnectionState, Optional[str]], None]


class ConnectionLifecycle:
    """Holds the current ConnectionState and notifies on changes."""

    def __init__(
        self,
        on_state_change: Optional[StateChangeCallback] = None,
    ):
        """
        Initialize connection lifecycle.

        Args:
            on_state_change: Callback invoked as (new_state, previous_state, error_message)
                whenever the state actually changes
        """
        self._state = ConnectionState.DISCONNECTED
        self._on_state_change = on_state_change
        self._error_message: Optional[str] = None

    @property
    def state(self) -> ConnectionState:
        """Get current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def is_disconnected(self) -> bool:
        return self._state == ConnectionState.DISCONNECTED

    @property
    def is_failed(self) -> bool:
        return self._state == ConnectionState.FAILED

    @property
    def is_connecting(self) -> bool:
        """Check if an attempt is in flight (first connect or reconnect)."""
        return self._state in (ConnectionState.CONNECTING, ConnectionState.RECONNECTING)

    @property
    def error_message(self) -> Optional[str]:
        """Get the reason recorded with the FAILED state."""
        return self._error_message

    def set_state(self, state: ConnectionState, error_message: Optional[str] = None) -> bool:
        """
        Update connection state and notify callback.

        Args:
            state: New connection state
            error_message: Optional reason, kept only for FAILED

        Returns:
            True if the state changed
        """
        if self._state == state:
            if state == ConnectionState.FAILED and error_message:
                self._error_message = error_message
            return False

        previous = self._state
        self._state = state
        self._error_message = error_message if state == ConnectionState.FAILED else None

        logger.debug(f"State changed: {previous.value} -> {state.value}")

        if self._on_state_change:
            try:
                self._on_state_change(state, previous, self._error_message)
            except Exception as e:
                logger.error(f"Error in state change callback: {e}")
        return True
