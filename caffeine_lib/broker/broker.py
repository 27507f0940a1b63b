"""In-process publish/subscribe hub for change events.

Each subscriber owns a bounded `asyncio.Queue` bound to the event loop it
subscribed from. `publish` may be called from any thread (request handlers
run in a worker pool); it never waits on a subscriber. Delivery is handed
to each subscriber's loop with `call_soon_threadsafe`, which keeps events
from one publishing thread in order.

Overflow policy: when a subscriber's queue is full the oldest queued event
is dropped to make room and counted in `Subscription.dropped`.
"""
from __future__ import annotations
import asyncio
import itertools
import logging
import threading
from typing import AsyncIterator, Dict, Optional

from caffeine_lib.errors import BrokerUnavailable
from .events import ChangeEvent

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """One subscriber's view of the event stream.

    Iterate it with `async for` or call `get()`. Iteration ends once the
    subscription is closed (unsubscribe or broker shutdown).
    """

    def __init__(self, sid: int, loop: asyncio.AbstractEventLoop, maxsize: int) -> None:
        self.id = sid
        self.maxsize = int(maxsize)
        self.dropped = 0
        self.delivered = 0
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=self.maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def depth(self) -> int:
        return self._queue.qsize()

    def _put(self, item) -> None:
        # runs on the subscriber's loop only
        if self._closed and item is not _CLOSED:
            return
        if self._queue.full():
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            else:
                self.dropped += 1
                logger.warning("Subscriber %s is slow; dropped oldest event", self.id)
        self._queue.put_nowait(item)

    def _schedule(self, item) -> bool:
        try:
            self._loop.call_soon_threadsafe(self._put, item)
        except RuntimeError:
            # the subscriber's event loop is closed
            return False
        return True

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._schedule(_CLOSED)

    async def get(self) -> Optional[ChangeEvent]:
        """Wait for the next event; returns None once the subscription is closed."""
        item = await self._queue.get()
        if item is _CLOSED:
            # let concurrent readers see the end too
            self._queue.put_nowait(_CLOSED)
            return None
        self.delivered += 1
        return item

    def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ChangeEvent]:
        while True:
            event = await self.get()
            if event is None:
                return
            yield event


class ChangeBroker:
    """Fan-out hub. Construct one per serving process and pass it around."""

    def __init__(self, queue_size: int = 100) -> None:
        self.queue_size = int(queue_size)
        self._lock = threading.Lock()
        self._subscribers: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._closed = False
        self.published = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> Subscription:
        """Register a subscriber on `loop` (default: the running loop).

        Only events published after this call are delivered.
        """
        loop = loop or asyncio.get_running_loop()
        with self._lock:
            if self._closed:
                raise BrokerUnavailable("change broker is shut down")
            sub = Subscription(next(self._ids), loop, self.queue_size)
            self._subscribers[sub.id] = sub
            count = len(self._subscribers)
        logger.info("Subscriber %s connected (%d active)", sub.id, count)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        """Stop delivery to `sub` and release its queue. Safe to repeat."""
        with self._lock:
            removed = self._subscribers.pop(sub.id, None)
            count = len(self._subscribers)
        sub._close()
        if removed is not None:
            logger.info("Subscriber %s disconnected (%d active)", sub.id, count)

    def publish(self, event: ChangeEvent) -> int:
        """Hand `event` to every current subscriber without blocking.

        Returns the number of subscribers it was scheduled for.
        """
        with self._lock:
            if self._closed:
                raise BrokerUnavailable("change broker is shut down")
            self.published += 1
            targets = list(self._subscribers.values())

        delivered = 0
        for sub in targets:
            if sub._schedule(event):
                delivered += 1
            else:
                logger.debug("Removing subscriber %s with a closed event loop", sub.id)
                self.unsubscribe(sub)
        return delivered

    def close(self) -> None:
        """Shut down: end every subscription and refuse new ones."""
        with self._lock:
            self._closed = True
            targets = list(self._subscribers.values())
            self._subscribers.clear()
        for sub in targets:
            sub._close()
        logger.info("Change broker closed (%d subscribers released)", len(targets))

    def stats(self) -> Dict[str, int]:
        with self._lock:
            subs = list(self._subscribers.values())
            published = self.published
        return {
            "subscribers": len(subs),
            "published": published,
            "dropped": sum(s.dropped for s in subs),
        }
