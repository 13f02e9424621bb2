"""
Process-wide fan-out of product change events to open SSE connections.

One ``Broadcaster`` is created when the application starts and kept on
``app.state``. Each stream connection owns a ``Subscription``: a bounded
asyncio queue bound to the event loop that serves the connection. Route
handlers run in the threadpool, so ``notify`` hands messages to each loop
with ``call_soon_threadsafe`` instead of touching the queues directly.
"""
import asyncio
import json
import threading
from typing import Any, Optional, Set

from fastapi import Request
from loguru import logger

from pharmapos.events.schemas import EventType


class Subscription:
    def __init__(self, loop: asyncio.AbstractEventLoop, maxsize: int = 100):
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def _put(self, message: Optional[str]):
        if self.closed:
            return
        if message is None:
            # shutdown: wake a reader blocked on an empty queue
            self.closed = True
            if self.queue.empty():
                self.queue.put_nowait(None)
            return
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("Product update subscriber is too slow, dropping its stream")
            self.closed = True

    def deliver(self, message: Optional[str]):
        self.loop.call_soon_threadsafe(self._put, message)

    async def get(self) -> Optional[str]:
        return await self.queue.get()

    @property
    def exhausted(self) -> bool:
        return self.closed and self.queue.empty()


class Broadcaster:
    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._lock = threading.Lock()
        self._subscribers: Set[Subscription] = set()

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> Subscription:
        """Register a stream; must be called from the loop serving it."""
        subscription = Subscription(asyncio.get_running_loop(), self.queue_size)
        with self._lock:
            self._subscribers.add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription):
        with self._lock:
            self._subscribers.discard(subscription)

    def notify(self, event_type: EventType | str, data: Any) -> int:
        """
        Send ``{"type": ..., "data": ...}`` to every subscription registered
        right now. Best effort: a broken subscription is dropped and the
        rest still receive the event. Returns how many were reached.
        """
        event_name = event_type.value if isinstance(event_type, EventType) else event_type
        message = json.dumps({"type": event_name, "data": data}, default=str)

        with self._lock:
            targets = list(self._subscribers)

        delivered = 0
        for subscription in targets:
            if subscription.closed:
                # overflowed earlier; its stream only drains what it already has
                self.unsubscribe(subscription)
                continue
            try:
                subscription.deliver(message)
                delivered += 1
            except RuntimeError as e:
                # the connection's loop is gone
                logger.warning(f"Dropping stale product update subscriber: {e}")
                self.unsubscribe(subscription)

        logger.debug(f"Broadcast {event_name} to {delivered} subscriber(s)")
        return delivered

    def close(self):
        """End every open stream; used at application shutdown."""
        with self._lock:
            targets = list(self._subscribers)
            self._subscribers.clear()

        for subscription in targets:
            try:
                subscription.deliver(None)
            except RuntimeError as e:
                logger.debug(f"Subscriber loop already closed at shutdown: {e}")


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster
