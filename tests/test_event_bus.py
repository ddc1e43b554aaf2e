"""Tests for emoquiz.events.event_bus — Async fan-out event bus."""

import asyncio

from emoquiz.events.event_bus import EventBus
from emoquiz.quiz.types import MatchOutcome, EvaluationResult, TranscriptEvent


def _make_event(text: str = "titanic", is_final: bool = False) -> TranscriptEvent:
    """Helper to create a minimal transcript event for testing."""
    return TranscriptEvent(text=text, is_final=is_final, timestamp=0.0)


class TestSubscribe:
    """Tests for EventBus.subscribe()."""

    async def test_subscribe_creates_a_new_queue(self, event_bus: EventBus):
        queue = await event_bus.subscribe()
        assert isinstance(queue, asyncio.Queue)

    async def test_subscribe_increments_subscriber_count(self, event_bus: EventBus):
        assert event_bus.subscriber_count == 0
        await event_bus.subscribe()
        assert event_bus.subscriber_count == 1
        await event_bus.subscribe()
        assert event_bus.subscriber_count == 2

    async def test_multiple_subscribes_return_different_queues(
        self, event_bus: EventBus
    ):
        q1 = await event_bus.subscribe()
        q2 = await event_bus.subscribe()
        assert q1 is not q2


class TestEmit:
    """Tests for EventBus.emit()."""

    async def test_emit_fanout_to_multiple_subscribers(self, event_bus: EventBus):
        q1 = await event_bus.subscribe()
        q2 = await event_bus.subscribe()

        event = _make_event()
        await event_bus.emit(event)

        assert q1.get_nowait() is event
        assert q2.get_nowait() is event

    async def test_emit_to_empty_bus_does_not_error(self, event_bus: EventBus):
        await event_bus.emit(_make_event())

    async def test_emit_preserves_arrival_order(self, event_bus: EventBus):
        queue = await event_bus.subscribe()
        events = [
            _make_event("tie"),
            _make_event("tie tan"),
            _make_event("titanic", is_final=True),
        ]
        for event in events:
            await event_bus.emit(event)

        assert [queue.get_nowait() for _ in events] == events

    async def test_emit_carries_any_item_type(self, event_bus: EventBus):
        queue = await event_bus.subscribe()
        result = EvaluationResult(
            match_outcome=MatchOutcome.NO_RESPONSE, recognized_text=""
        )
        await event_bus.emit(result)
        assert queue.get_nowait() is result

    async def test_emit_drops_item_when_queue_is_full(self):
        """A full subscriber queue drops the item instead of raising."""
        bus = EventBus(maxsize=2)
        slow = await bus.subscribe()
        fast = await bus.subscribe()

        await bus.emit(_make_event("one"))
        await bus.emit(_make_event("two"))
        fast.get_nowait()
        fast.get_nowait()

        await bus.emit(_make_event("three"))
        assert slow.qsize() == 2
        assert fast.get_nowait().text == "three"
        assert bus.dropped == 1


class TestUnsubscribe:
    """Tests for EventBus.unsubscribe()."""

    async def test_unsubscribe_stops_event_delivery(self, event_bus: EventBus):
        queue = await event_bus.subscribe()
        await event_bus.unsubscribe(queue)

        assert event_bus.subscriber_count == 0
        await event_bus.emit(_make_event())
        assert queue.empty()

    async def test_unsubscribe_unknown_queue_is_noop(self, event_bus: EventBus):
        foreign_queue: asyncio.Queue = asyncio.Queue()
        await event_bus.unsubscribe(foreign_queue)
        assert event_bus.subscriber_count == 0


class TestSubscription:
    """Tests for the EventBus.subscription() context manager."""

    async def test_subscription_unsubscribes_on_exit(self, event_bus: EventBus):
        async with event_bus.subscription() as queue:
            assert event_bus.subscriber_count == 1
            await event_bus.emit(_make_event("titanic"))
            assert queue.get_nowait().text == "titanic"
        assert event_bus.subscriber_count == 0

    async def test_subscription_unsubscribes_on_error(self, event_bus: EventBus):
        try:
            async with event_bus.subscription():
                raise RuntimeError("consumer failed")
        except RuntimeError:
            pass
        assert event_bus.subscriber_count == 0
