"""Tests for RetryController."""

from gamelink.config import ConnectionConfig
from gamelink.connection import RetryController


def fixed_jitter(value):
    return lambda low, high: value


class TestBackoff:
    """Tests for delay calculation."""

    def test_base_delay_grows_and_caps(self):
        retry = RetryController(uniform=fixed_jitter(0.0))

        assert retry.calculate_delay(0) == 1000
        assert retry.calculate_delay(1) == 2000
        assert retry.calculate_delay(2) == 4000
        assert retry.calculate_delay(3) == 8000
        assert retry.calculate_delay(4) == 16000
        assert retry.calculate_delay(5) == 30000
        assert retry.calculate_delay(50) == 30000

    def test_huge_attempt_does_not_overflow(self):
        retry = RetryController(uniform=fixed_jitter(0.0))
        assert retry.calculate_delay(5000) == 30000

    def test_jitter_bounds(self):
        high = RetryController(uniform=fixed_jitter(1.0))
        low = RetryController(uniform=fixed_jitter(-1.0))

        assert high.calculate_delay(0) == 1250
        assert low.calculate_delay(0) == 750
        assert high.calculate_delay(10) == 37500
        assert low.calculate_delay(10) == 22500

    def test_delay_is_floored(self):
        retry = RetryController(initial_delay_ms=3, jitter_factor=0.5, uniform=fixed_jitter(0.5))
        # 3 + 3 * 0.5 * 0.5 = 3.75
        assert retry.calculate_delay(0) == 3

    def test_delay_never_negative(self):
        retry = RetryController(jitter_factor=1.0, uniform=fixed_jitter(-1.0))
        assert retry.calculate_delay(0) == 0

    def test_real_jitter_stays_in_range(self):
        retry = RetryController()
        for attempt in range(8):
            base = retry.base_delay(attempt)
            for _ in range(20):
                delay = retry.calculate_delay(attempt)
                assert base * 0.75 - 1 <= delay <= base * 1.25


class TestCircuitBreaker:
    """Tests for failure counting and the breaker."""

    def test_breaker_arms_at_threshold(self):
        now = [5000]
        retry = RetryController(clock=lambda: now[0], uniform=fixed_jitter(0.0))

        for _ in range(9):
            assert retry.record_failure() is False
        assert retry.is_circuit_open() is False

        assert retry.record_failure() is True
        assert retry.is_circuit_open() is True
        assert retry.circuit_breaker_until == 5000 + 300000
        assert retry.next_delay() == 300000

    def test_breaker_stays_open_after_cooldown_until_success(self):
        now = [0]
        retry = RetryController(clock=lambda: now[0], max_consecutive_failures=2)
        retry.record_failure()
        retry.record_failure()

        now[0] += 300001
        assert retry.is_circuit_open() is True
        assert retry.next_delay() == retry.cooldown_ms

    def test_cooldown_remaining(self):
        now = [0]
        retry = RetryController(clock=lambda: now[0], max_consecutive_failures=1)
        assert retry.cooldown_remaining() == 0

        retry.record_failure()
        now[0] += 1000
        assert retry.cooldown_remaining() == 299000

        now[0] += 300000
        assert retry.cooldown_remaining() == 0

    def test_record_success_clears_everything(self):
        retry = RetryController(max_consecutive_failures=1)
        retry.record_failure()
        retry.begin_attempt()

        retry.record_success()

        state = retry.state
        assert state.consecutive_failures == 0
        assert state.circuit_breaker_until is None
        assert state.current_attempt == 0
        assert retry.is_circuit_open() is False

    def test_next_delay_follows_attempt_counter(self):
        retry = RetryController(uniform=fixed_jitter(0.0))
        assert retry.next_delay() == 1000
        retry.begin_attempt()
        assert retry.next_delay() == 2000
        retry.begin_attempt()
        assert retry.next_delay() == 4000


class TestRetryLimits:
    """Tests for optional attempt caps."""

    def test_unbounded_by_default(self):
        retry = RetryController()
        for _ in range(100):
            retry.begin_attempt()
        assert retry.should_retry() is True

    def test_max_reconnect_attempts(self):
        retry = RetryController(max_reconnect_attempts=2)
        assert retry.should_retry() is True
        retry.begin_attempt()
        assert retry.should_retry() is True
        retry.begin_attempt()
        assert retry.should_retry() is False

    def test_max_cooldown_retries(self):
        retry = RetryController(max_consecutive_failures=1, max_cooldown_retries=1)
        retry.record_failure()

        assert retry.should_retry() is True
        retry.begin_attempt()
        assert retry.should_retry() is False

        retry.reset()
        assert retry.should_retry() is True

    def test_note_attempt(self):
        retry = RetryController()
        retry.note_attempt(4)
        assert retry.current_attempt == 4
        retry.note_attempt(-1)
        assert retry.current_attempt == 0


def test_from_config_uses_config_values():
    config = ConnectionConfig(initialDelayMs=500, maxDelayMs=4000, backoffMultiplier=3, jitterFactor=0)
    retry = RetryController.from_config(config)

    assert retry.calculate_delay(0) == 500
    assert retry.calculate_delay(1) == 1500
    assert retry.calculate_delay(2) == 4000
    assert retry.max_delay_ms == 4000
