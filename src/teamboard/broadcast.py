import asyncio
import json
from typing import AsyncIterator, Callable

import structlog

from teamboard.models import Snapshot

logger = structlog.get_logger()

# each message is a full snapshot, so a short backlog is enough
DEFAULT_QUEUE_SIZE = 4


def encode_snapshot(snapshot: "Snapshot") -> "str":
    return json.dumps([m.to_dict() for m in snapshot])


def format_event(payload: "str") -> "str":
    return f"data: {payload}\n\n"


class Subscription:
    """
    Subscription is one connected client's pending message queue.
    """

    def __init__(self, queue_size: "int" = DEFAULT_QUEUE_SIZE) -> "None":
        self.queue: "asyncio.Queue[str]" = asyncio.Queue(maxsize=queue_size)
        self.closed = False

    def offer(self, message: "str") -> "None":
        """
        enqueues without waiting. When the client has fallen behind the
        oldest pending message is dropped to make room.
        """
        if self.queue.full():
            self.queue.get_nowait()
        self.queue.put_nowait(message)


class Broadcaster:
    """
    Broadcaster fans snapshots out to every connected event stream.
    Publishing never waits on a subscriber, and a failure to deliver
    to one subscriber does not affect the others.
    """

    def __init__(
        self,
        queue_size: "int" = DEFAULT_QUEUE_SIZE,
        on_subscribers_changed: "Callable[[int], None] | None" = None,
    ) -> "None":
        self._queue_size = queue_size
        self._subscribers: "set[Subscription]" = set()
        self._on_subscribers_changed = on_subscribers_changed

    @property
    def subscriber_count(self) -> "int":
        return len(self._subscribers)

    def subscribe(self) -> "Subscription":
        sub = Subscription(self._queue_size)
        self._subscribers.add(sub)
        logger.debug("subscriber_added", subscribers=len(self._subscribers))
        self._notify_count()
        return sub

    def unsubscribe(self, sub: "Subscription") -> "None":
        sub.closed = True
        if sub in self._subscribers:
            self._subscribers.discard(sub)
            logger.debug("subscriber_removed", subscribers=len(self._subscribers))
            self._notify_count()

    def publish(self, snapshot: "Snapshot") -> "None":
        """
        delivers the full snapshot to every subscriber.
        """
        message = format_event(encode_snapshot(snapshot))
        delivered = 0

        for sub in list(self._subscribers):
            if sub.closed:
                self.unsubscribe(sub)
                continue
            try:
                sub.offer(message)
            except Exception:
                logger.exception("subscriber_delivery_failed")
                self.unsubscribe(sub)
                continue
            delivered += 1

        logger.debug("snapshot_broadcast", subscribers=delivered)

    async def stream(self, initial: "Snapshot" = ()) -> "AsyncIterator[str]":
        """
        yields server-sent event frames for a new subscriber, starting with
        the initial snapshot when there is one. Subscribing happens on the
        first iteration, so a stream that is never consumed holds no
        subscription; it is released when the consumer goes away.
        """
        sub = self.subscribe()
        try:
            if initial:
                yield format_event(encode_snapshot(initial))
            while not sub.closed:
                yield await sub.queue.get()
        finally:
            self.unsubscribe(sub)

    def _notify_count(self) -> "None":
        if self._on_subscribers_changed is not None:
            self._on_subscribers_changed(len(self._subscribers))
