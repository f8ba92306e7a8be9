"""Tests for EventBus."""

import pytest

from gamelink.domain.events import ConnectionStateChanged, EventBus, MetricsUpdated
from gamelink.domain.types import ConnectionMetrics, ConnectionState


def test_publish_reaches_subscribers_in_order():
    bus = EventBus()
    calls = []
    bus.subscribe(ConnectionStateChanged, lambda e: calls.append(("first", e.state)))
    bus.subscribe(ConnectionStateChanged, lambda e: calls.append(("second", e.state)))

    bus.publish(ConnectionStateChanged(state=ConnectionState.CONNECTED))

    assert calls == [("first", ConnectionState.CONNECTED), ("second", ConnectionState.CONNECTED)]


def test_events_are_routed_by_type():
    bus = EventBus()
    calls = []
    bus.subscribe(MetricsUpdated, calls.append)

    bus.publish(ConnectionStateChanged(state=ConnectionState.FAILED))

    assert calls == []
    assert bus.has_subscribers(MetricsUpdated)
    assert not bus.has_subscribers(ConnectionStateChanged)


def test_handler_error_does_not_stop_others():
    bus = EventBus()
    calls = []

    def broken(_):
        raise RuntimeError("boom")

    bus.subscribe(MetricsUpdated, broken)
    bus.subscribe(MetricsUpdated, calls.append)

    bus.publish(MetricsUpdated(metrics=ConnectionMetrics(latency_ms=12)))

    assert calls[0].metrics.latency_ms == 12


def test_async_handlers_rejected():
    bus = EventBus()

    async def handler(_):
        pass

    with pytest.raises(TypeError):
        bus.subscribe(ConnectionStateChanged, handler)


def test_duplicate_subscription_and_unsubscribe():
    bus = EventBus()
    calls = []
    bus.subscribe(ConnectionStateChanged, calls.append)
    bus.subscribe(ConnectionStateChanged, calls.append)

    bus.publish(ConnectionStateChanged(state=ConnectionState.CONNECTING))
    assert len(calls) == 1

    bus.unsubscribe(ConnectionStateChanged, calls.append)
    bus.unsubscribe(ConnectionStateChanged, calls.append)
    bus.publish(ConnectionStateChanged(state=ConnectionState.CONNECTED))
    assert len(calls) == 1


def test_clear():
    bus = EventBus()
    bus.subscribe(ConnectionStateChanged, lambda e: None)
    bus.clear()
    assert not bus.has_subscribers(ConnectionStateChanged)
