"""Unit tests for the pipeline event bus"""

import asyncio
import logging
import pytest

from core.events import EventBus, LogEvent, ProgressEvent, Severity, StateEvent


class TestPublishing:
    """Tests for fan-out to queues and listeners"""

    def test_listener_receives_events(self):
        bus = EventBus()
        received = []
        bus.add_listener(received.append)

        bus.log("hello")
        bus.progress("Render", 42.0)
        bus.state(True)

        assert received == [
            LogEvent("hello", Severity.INFO),
            ProgressEvent("Render", 42.0),
            StateEvent(True),
        ]

    def test_removed_listener_stops_receiving(self):
        bus = EventBus()
        received = []
        bus.add_listener(received.append)
        bus.remove_listener(received.append)

        bus.log("hello")
        assert received == []

    @pytest.mark.asyncio
    async def test_every_queue_gets_every_event(self):
        bus = EventBus()
        first = bus.subscribe()
        second = bus.subscribe()

        bus.log("one")

        assert (await first.get()).message == "one"
        assert (await second.get()).message == "one"

    @pytest.mark.asyncio
    async def test_unsubscribed_queue_left_alone(self):
        bus = EventBus()
        queue = bus.subscribe()
        bus.unsubscribe(queue)

        bus.log("one")
        assert queue.empty()

    def test_failing_listener_does_not_block_others(self, caplog):
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("listener bug")

        bus.add_listener(broken)
        bus.add_listener(received.append)

        with caplog.at_level(logging.ERROR, logger="core.events"):
            bus.log("still delivered")

        assert received == [LogEvent("still delivered")]
        assert "listener bug" in caplog.text


class TestLogging:
    """Tests for log narration"""

    def test_log_mirrored_to_logging(self, caplog):
        bus = EventBus(logger_name="stitcher.test")

        with caplog.at_level(logging.DEBUG, logger="stitcher.test"):
            bus.log("scene skipped", Severity.WARNING)
            bus.log("all done", Severity.SUCCESS)

        levels = [(r.levelno, r.getMessage()) for r in caplog.records if r.name == "stitcher.test"]
        assert levels == [(logging.WARNING, "scene skipped"), (logging.INFO, "all done")]

    def test_empty_message_not_published(self, caplog):
        bus = EventBus()
        received = []
        bus.add_listener(received.append)

        with caplog.at_level(logging.ERROR, logger="core.events"):
            bus.log("")

        assert received == []
        assert "empty message" in caplog.text

    def test_progress_clamped(self):
        bus = EventBus()
        received = []
        bus.add_listener(received.append)

        bus.progress("Render", 140.0)
        bus.progress("Render", -5.0)

        assert [e.percent for e in received] == [100.0, 0.0]


class TestStream:
    """Tests for the async event stream"""

    @pytest.mark.asyncio
    async def test_stream_ends_when_processing_stops(self):
        bus = EventBus()
        collected = []

        async def consume():
            async for event in bus.stream():
                collected.append(event)

        consumer = asyncio.create_task(consume())
        await asyncio.sleep(0)

        bus.state(True)
        bus.log("working")
        bus.state(False)
        await asyncio.wait_for(consumer, timeout=1)

        assert collected == [StateEvent(True), LogEvent("working"), StateEvent(False)]

    @pytest.mark.asyncio
    async def test_stream_unsubscribes(self):
        bus = EventBus()

        async def consume():
            async for _ in bus.stream():
                pass

        consumer = asyncio.create_task(consume())
        await asyncio.sleep(0)
        bus.state(False)
        await asyncio.wait_for(consumer, timeout=1)

        assert bus._queues == []
