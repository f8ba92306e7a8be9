"""Shared fixtures: a scriptable transport and a controllable clock."""

import asyncio
from collections import defaultdict
from typing import Any, Optional

import pytest

from gamelink.config import ConnectionConfig
from gamelink.connection import ConnectionManager, RetryController
from gamelink.domain.events import EventBus


class FakeTransport:
    """Transport whose lifecycle events are fired by the test."""

    def __init__(self):
        self.handlers: dict[str, list] = defaultdict(list)
        self.sent: list[tuple[str, Any]] = []
        self.open_calls = 0
        self.close_calls = 0
        self.connected = False
        self.open_error: Optional[Exception] = None

    def on(self, event, handler):
        self.handlers[event].append(handler)

    async def open(self):
        self.open_calls += 1
        if self.open_error is not None:
            raise self.open_error

    async def close(self):
        self.close_calls += 1
        self.connected = False

    def send(self, event, payload):
        self.sent.append((event, payload))

    def fire(self, event, *args):
        if event == "connect":
            self.connected = True
        elif event == "disconnect":
            self.connected = False
        for handler in list(self.handlers[event]):
            handler(*args)

    def sent_events(self) -> list[str]:
        return [event for event, _ in self.sent if event != "ping"]


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: int = 1_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


async def settle(rounds: int = 5) -> None:
    """Give scheduled tasks a few loop iterations to run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def make_manager(transport, clock, event_bus):
    """Build a manager with jitter disabled so delays are exact."""

    def _make(**overrides) -> ConnectionManager:
        config = ConnectionConfig(**overrides)
        retry = RetryController.from_config(config, clock=clock, uniform=lambda a, b: 0.0)
        return ConnectionManager(
            transport,
            config,
            event_bus=event_bus,
            clock=clock,
            retry=retry,
        )

    return _make


@pytest.fixture
def run_pending():
    return settle
