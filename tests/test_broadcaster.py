# Broadcaster and update stream tests
#
# Tests for:
# - Fan-out to every registered subscription
# - Unsubscribe safety, slow and stale subscribers
# - SSE framing, keep-alives and cleanup on disconnect / shutdown

import asyncio
import json

import pytest

from pharmapos.events.broadcaster import Broadcaster, get_broadcaster
from pharmapos.events.router import event_stream
from pharmapos.events.schemas import EventType
from pharmapos.main import app


async def _next(subscription, timeout=1.0):
    return await asyncio.wait_for(subscription.get(), timeout)


class TestBroadcaster:

    def test_notify_reaches_every_subscriber(self):
        async def scenario():
            broadcaster = Broadcaster()
            first = broadcaster.subscribe()
            second = broadcaster.subscribe()

            reached = broadcaster.notify(EventType.PRODUCT_DELETED, {"id": 4})

            assert reached == 2
            for subscription in (first, second):
                message = json.loads(await _next(subscription))
                assert message == {"type": "product_deleted", "data": {"id": 4}}

        asyncio.run(scenario())

    def test_notify_from_worker_thread(self):
        """
        SCENARIO: A sync route handler in the threadpool publishes a change
        EXPECTED: The subscriber on the event loop receives it
        """
        async def scenario():
            broadcaster = Broadcaster()
            subscription = broadcaster.subscribe()

            await asyncio.to_thread(
                broadcaster.notify, EventType.PRODUCT_UPDATE, {"product": {"id": 1, "stock": 90}}
            )

            message = json.loads(await _next(subscription))
            assert message["data"]["product"]["stock"] == 90

        asyncio.run(scenario())

    def test_late_subscriber_gets_no_replay(self):
        async def scenario():
            broadcaster = Broadcaster()
            assert broadcaster.notify(EventType.PRODUCT_DELETED, {"id": 1}) == 0

            subscription = broadcaster.subscribe()
            await asyncio.sleep(0)
            assert subscription.queue.empty()

        asyncio.run(scenario())

    def test_unsubscribe_twice_is_harmless(self):
        async def scenario():
            broadcaster = Broadcaster()
            subscription = broadcaster.subscribe()

            broadcaster.unsubscribe(subscription)
            broadcaster.unsubscribe(subscription)

            assert len(broadcaster) == 0
            assert broadcaster.notify(EventType.PRODUCT_DELETED, {"id": 1}) == 0

        asyncio.run(scenario())

    def test_full_queue_closes_only_that_subscription(self):
        async def scenario():
            broadcaster = Broadcaster(queue_size=1)
            slow = broadcaster.subscribe()

            broadcaster.notify(EventType.PRODUCT_DELETED, {"id": 1})
            broadcaster.notify(EventType.PRODUCT_DELETED, {"id": 2})
            await asyncio.sleep(0)

            assert slow.closed
            assert json.loads(await _next(slow))["data"] == {"id": 1}
            assert slow.exhausted

            fresh = broadcaster.subscribe()
            assert broadcaster.notify(EventType.PRODUCT_DELETED, {"id": 3}) == 1
            assert json.loads(await _next(fresh))["data"] == {"id": 3}
            assert len(broadcaster) == 1

        asyncio.run(scenario())

    def test_stale_loop_subscriber_dropped(self):
        broadcaster = Broadcaster()

        async def register():
            return broadcaster.subscribe()

        asyncio.run(register())
        assert len(broadcaster) == 1

        assert broadcaster.notify(EventType.PRODUCT_DELETED, {"id": 1}) == 0
        assert len(broadcaster) == 0

    def test_close_wakes_waiting_readers(self):
        async def scenario():
            broadcaster = Broadcaster()
            subscription = broadcaster.subscribe()

            broadcaster.close()

            assert await _next(subscription) is None
            assert subscription.exhausted
            assert len(broadcaster) == 0

        asyncio.run(scenario())


class FakeRequest:
    client = None

    def __init__(self):
        self.disconnected = False

    async def is_disconnected(self):
        return self.disconnected


class TestEventStream:

    def test_frames_keepalive_and_disconnect(self):
        """
        SCENARIO: A till connects, receives one change, idles, then goes away
        EXPECTED: data frame, keep-alive comment, subscription removed
        """
        async def scenario():
            broadcaster = Broadcaster()
            request = FakeRequest()
            stream = event_stream(request, broadcaster, keepalive=0.05)

            assert await stream.__anext__() == ": connected\n\n"
            assert len(broadcaster) == 1

            broadcaster.notify(EventType.PRODUCT_DELETED, {"id": 3})
            frame = await stream.__anext__()
            assert frame.startswith("data: ")
            assert frame.endswith("\n\n")
            assert json.loads(frame[len("data: "):-2]) == {
                "type": "product_deleted", "data": {"id": 3},
            }

            assert await stream.__anext__() == ": keep-alive\n\n"

            request.disconnected = True
            with pytest.raises(StopAsyncIteration):
                await stream.__anext__()
            assert len(broadcaster) == 0

        asyncio.run(scenario())

    def test_shutdown_ends_stream(self):
        async def scenario():
            broadcaster = Broadcaster()
            stream = event_stream(FakeRequest(), broadcaster, keepalive=5)
            await stream.__anext__()

            broadcaster.close()

            with pytest.raises(StopAsyncIteration):
                await stream.__anext__()

        asyncio.run(scenario())

    def test_closing_generator_unsubscribes(self):
        async def scenario():
            broadcaster = Broadcaster()
            stream = event_stream(FakeRequest(), broadcaster, keepalive=5)
            await stream.__anext__()

            await stream.aclose()

            assert len(broadcaster) == 0

        asyncio.run(scenario())


class ClosingBroadcaster(Broadcaster):
    """Hands out subscriptions that are already shut, so a stream ends at once."""

    def subscribe(self):
        subscription = super().subscribe()
        subscription.closed = True
        return subscription


class TestUpdatesEndpoint:

    @pytest.fixture
    def closing_broadcaster(self):
        broadcaster = ClosingBroadcaster()
        app.dependency_overrides[get_broadcaster] = lambda: broadcaster
        yield broadcaster
        app.dependency_overrides.pop(get_broadcaster, None)

    def test_updates_served_as_event_stream(self, client, closing_broadcaster):
        """
        SCENARIO: A till opens /api/products/updates
        EXPECTED: The stream route answers (not the /{product_id} lookup),
                  with text/event-stream and the connected comment
        """
        response = client.get("/api/products/updates")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.text == ": connected\n\n"
        assert len(closing_broadcaster) == 0
