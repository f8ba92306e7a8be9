"""Tests for MessageQueue."""

from gamelink.connection import MessageQueue


class TestOrdering:
    """Priority then insertion order."""

    def test_higher_priority_first(self):
        queue = MessageQueue()
        queue.add("x", {"n": 1}, priority=0)
        queue.add("y", {"n": 2}, priority=5)

        assert [m.event for m in queue.get_all()] == ["y", "x"]

    def test_fifo_within_priority(self):
        queue = MessageQueue()
        for event in ("a", "b", "c"):
            queue.add(event, None, priority=1)
        queue.add("urgent", None, priority=9)
        queue.add("d", None, priority=1)

        assert [m.event for m in queue.get_all()] == ["urgent", "a", "b", "c", "d"]

    def test_negative_priority_goes_last(self):
        queue = MessageQueue()
        queue.add("low", None, priority=-1)
        queue.add("normal", None)

        assert [m.event for m in queue.get_all()] == ["normal", "low"]

    def test_duplicates_are_kept(self):
        queue = MessageQueue()
        queue.add("play_card", {"card": "7H"})
        queue.add("play_card", {"card": "7H"})

        assert queue.size() == 2


class TestContents:
    """Reading and clearing."""

    def test_get_all_does_not_remove(self):
        queue = MessageQueue()
        queue.add("x", None)

        queue.get_all()

        assert queue.size() == 1
        assert not queue.is_empty()

    def test_clear(self):
        queue = MessageQueue()
        queue.add("x", None)
        queue.add("y", None)

        queue.clear()

        assert queue.is_empty()
        assert queue.get_all() == []

    def test_drain_returns_ordered_and_empties(self):
        queue = MessageQueue()
        queue.add("x", None)
        queue.add("y", None, priority=2)

        drained = queue.drain()

        assert [m.event for m in drained] == ["y", "x"]
        assert len(queue) == 0

    def test_message_fields(self):
        queue = MessageQueue(clock=lambda: 42)
        message = queue.add("join_game", {"gameId": "g1"}, priority=3)

        assert message.event == "join_game"
        assert message.payload == {"gameId": "g1"}
        assert message.priority == 3
        assert message.enqueued_at == 42


class TestLimits:
    """Optional size cap and TTL."""

    def test_unbounded_by_default(self):
        queue = MessageQueue()
        for i in range(1000):
            queue.add(f"e{i}", None)
        assert queue.size() == 1000

    def test_max_size_evicts_oldest_lowest_priority(self):
        queue = MessageQueue(max_size=3)
        queue.add("keep-high", None, priority=5)
        queue.add("old-low", None, priority=0)
        queue.add("new-low", None, priority=0)

        queue.add("incoming", None, priority=1)

        assert [m.event for m in queue.get_all()] == ["keep-high", "incoming", "new-low"]

    def test_ttl_discards_expired(self):
        now = [0]
        queue = MessageQueue(ttl_ms=1000, clock=lambda: now[0])
        queue.add("stale", None)
        now[0] = 600
        queue.add("fresh", None)

        now[0] = 1200

        assert [m.event for m in queue.get_all()] == ["fresh"]
