"""Tests for ScheduledTask."""

import asyncio

import pytest

from gamelink.connection import ScheduledTask


class TestScheduledTask:
    """Tests for one-shot cancellable timers."""

    @pytest.mark.asyncio
    async def test_callback_runs_after_delay(self):
        calls = []
        timer = ScheduledTask("test")

        timer.schedule(5, lambda: calls.append("fired"))
        assert timer.is_pending
        assert timer.remaining_ms is not None

        await asyncio.sleep(0.05)

        assert calls == ["fired"]
        assert not timer.is_pending
        assert timer.remaining_ms is None

    @pytest.mark.asyncio
    async def test_cancel_prevents_callback(self):
        calls = []
        timer = ScheduledTask("test")

        timer.schedule(5, lambda: calls.append("fired"))
        assert timer.cancel() is True
        assert timer.cancel() is False

        await asyncio.sleep(0.05)
        assert calls == []

    @pytest.mark.asyncio
    async def test_reschedule_replaces_pending(self):
        calls = []
        timer = ScheduledTask("test")

        timer.schedule(5, lambda: calls.append("first"))
        timer.schedule(5, lambda: calls.append("second"))

        await asyncio.sleep(0.05)
        assert calls == ["second"]

    @pytest.mark.asyncio
    async def test_callback_may_reschedule_itself(self):
        calls = []
        timer = ScheduledTask("test")

        def tick():
            calls.append(len(calls))
            if len(calls) < 3:
                timer.schedule(1, tick)

        timer.schedule(1, tick)
        await asyncio.sleep(0.1)

        assert calls == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_callback_errors_are_contained(self):
        timer = ScheduledTask("test")

        def boom():
            raise RuntimeError("boom")

        timer.schedule(1, boom)
        await asyncio.sleep(0.03)

        assert not timer.is_pending

    def test_cancel_without_schedule(self):
        assert ScheduledTask("idle").cancel() is False
