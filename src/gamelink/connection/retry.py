"""Reconnection delay policy: exponential backoff with jitter and a circuit breaker."""

import math
import random
from typing import Callable, Optional

from gamelink.config import ConnectionConfig
from gamelink.domain.types import RetryState
from gamelink.logger import get_logger
from gamelink.utils import now_ms

logger = get_logger("connection.retry")


class RetryController:
    """Decides how long to wait before the next reconnection attempt.

    Attempt ``n`` (zero-indexed) waits::

        base  = min(initial_delay * multiplier**n, max_delay)
        delay = floor(base + base * jitter_factor * uniform(-1, 1))

    clamped at zero. Once ``consecutive_failures`` reaches the breaker
    threshold every delay is the cooldown until ``record_success()`` or
    ``reset()`` is called.
    """

    def __init__(
        self,
        initial_delay_ms: int = 1000,
        max_delay_ms: int = 30000,
        backoff_multiplier: float = 2.0,
        jitter_factor: float = 0.25,
        max_consecutive_failures: int = 10,
        circuit_breaker_cooldown_ms: int = 5 * 60 * 1000,
        max_reconnect_attempts: Optional[int] = None,
        max_cooldown_retries: Optional[int] = None,
        clock: Callable[[], int] = now_ms,
        uniform: Callable[[float, float], float] = random.uniform,
    ):
        """
        Initialize retry controller.

        Args:
            initial_delay_ms: Delay before the first reconnection attempt
            max_delay_ms: Cap on the un-jittered delay
            backoff_multiplier: Growth factor per attempt
            jitter_factor: Fraction of the base delay used as +/- jitter
            max_consecutive_failures: Failures that arm the circuit breaker
            circuit_breaker_cooldown_ms: Delay used while the breaker is armed
            max_reconnect_attempts: Stop retrying after this many attempts (None = never)
            max_cooldown_retries: Stop retrying after this many cooldown attempts (None = never)
            clock: Millisecond time source
            uniform: Random source with the signature of random.uniform
        """
        self._initial_delay_ms = initial_delay_ms
        self._max_delay_ms = max_delay_ms
        self._backoff_multiplier = backoff_multiplier
        self._jitter_factor = jitter_factor
        self._max_consecutive_failures = max_consecutive_failures
        self._cooldown_ms = circuit_breaker_cooldown_ms
        self._max_reconnect_attempts = max_reconnect_attempts
        self._max_cooldown_retries = max_cooldown_retries
        self._clock = clock
        self._uniform = uniform

        self._consecutive_failures = 0
        self._circuit_breaker_until: Optional[int] = None
        self._current_attempt = 0
        self._cooldown_attempts = 0

    @classmethod
    def from_config(cls, config: ConnectionConfig, **kwargs) -> "RetryController":
        """Build a controller from ConnectionConfig; kwargs pass clock/uniform overrides."""
        return cls(
            initial_delay_ms=config.initial_delay_ms,
            max_delay_ms=config.max_delay_ms,
            backoff_multiplier=config.backoff_multiplier,
            jitter_factor=config.jitter_factor,
            max_consecutive_failures=config.max_consecutive_failures,
            circuit_breaker_cooldown_ms=config.circuit_breaker_cooldown_ms,
            max_reconnect_attempts=config.max_reconnect_attempts,
            max_cooldown_retries=config.max_cooldown_retries,
            **kwargs,
        )

    @property
    def state(self) -> RetryState:
        """Snapshot of the retry bookkeeping."""
        return RetryState(
            consecutive_failures=self._consecutive_failures,
            circuit_breaker_until=self._circuit_breaker_until,
            current_attempt=self._current_attempt,
        )

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def current_attempt(self) -> int:
        return self._current_attempt

    @property
    def circuit_breaker_until(self) -> Optional[int]:
        return self._circuit_breaker_until

    @property
    def cooldown_ms(self) -> int:
        return self._cooldown_ms

    @property
    def max_delay_ms(self) -> int:
        return self._max_delay_ms

    @property
    def max_attempts(self) -> Optional[int]:
        return self._max_reconnect_attempts

    def base_delay(self, attempt: int) -> float:
        """Un-jittered delay for a zero-indexed attempt."""
        if attempt <= 0:
            return float(min(self._initial_delay_ms, self._max_delay_ms))
        try:
            delay = self._initial_delay_ms * (self._backoff_multiplier ** attempt)
        except OverflowError:
            return float(self._max_delay_ms)
        return float(min(delay, self._max_delay_ms))

    def calculate_delay(self, attempt: int) -> int:
        """
        Calculate the jittered backoff delay for a zero-indexed attempt.

        Returns:
            Delay in milliseconds, never negative
        """
        base = self.base_delay(attempt)
        jitter = base * self._jitter_factor * self._uniform(-1.0, 1.0)
        return max(0, math.floor(base + jitter))

    def is_circuit_open(self) -> bool:
        """Check if the breaker currently dictates the cooldown delay."""
        if self._consecutive_failures >= self._max_consecutive_failures:
            return True
        return self._circuit_breaker_until is not None and self._circuit_breaker_until > self._clock()

    def cooldown_remaining(self) -> int:
        """Milliseconds left before an armed breaker expires (0 when disarmed or expired)."""
        if self._circuit_breaker_until is None:
            return 0
        return max(0, self._circuit_breaker_until - self._clock())

    def next_delay(self) -> int:
        """Delay for the upcoming attempt: the cooldown while the breaker is armed, backoff otherwise."""
        if self.is_circuit_open():
            return self._cooldown_ms
        return self.calculate_delay(self._current_attempt)

    def should_retry(self) -> bool:
        """Check if another automatic attempt is allowed."""
        if self.is_circuit_open():
            return (
                self._max_cooldown_retries is None
                or self._cooldown_attempts < self._max_cooldown_retries
            )
        return (
            self._max_reconnect_attempts is None
            or self._current_attempt < self._max_reconnect_attempts
        )

    def record_failure(self) -> bool:
        """
        Count a failed connection attempt and evaluate the breaker.

        Returns:
            True if the breaker is armed after this failure
        """
        self._consecutive_failures += 1

        if self._consecutive_failures < self._max_consecutive_failures:
            logger.debug(f"Consecutive failures: {self._consecutive_failures}")
            return False

        self._circuit_breaker_until = self._clock() + self._cooldown_ms
        logger.warning(
            f"Circuit breaker armed after {self._consecutive_failures} consecutive failures "
            f"(cooldown {self._cooldown_ms}ms)"
        )
        return True

    def begin_attempt(self) -> int:
        """Advance the attempt counter for a newly scheduled try and return its ordinal."""
        if self.is_circuit_open():
            self._cooldown_attempts += 1
        self._current_attempt += 1
        return self._current_attempt

    def note_attempt(self, attempt: int) -> None:
        """Adopt an attempt ordinal reported by a transport that retries on its own."""
        self._current_attempt = max(0, attempt)

    def record_success(self) -> None:
        """Clear all bookkeeping after a successful connection."""
        if self._consecutive_failures or self._circuit_breaker_until is not None:
            logger.info("Connection succeeded, retry state cleared")
        self.reset()

    def reset(self) -> None:
        """Clear failures, attempt counter and breaker."""
        self._consecutive_failures = 0
        self._circuit_breaker_until = None
        self._current_attempt = 0
        self._cooldown_attempts = 0
