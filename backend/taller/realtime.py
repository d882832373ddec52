# Overview: In-process connection registry for realtime cache invalidation.

"""
Realtime broadcast registry.

One ConnectionRegistry is constructed per application and owned by it
(app.extensions["realtime"]). Connected clients subscribe through the
server-sent events route and receive small JSON events telling them which
cached views to refetch.

LIFECYCLE:
    registry = ConnectionRegistry()
    registry.init_app(app)   # opens the registry
    ...
    registry.close()         # wakes every subscriber with an end-of-stream marker

Delivery is best-effort: a subscriber whose queue is full loses the event,
and events carry no ordering guarantee relative to persistence.
"""

from __future__ import annotations

import itertools
import queue
import threading
from dataclasses import dataclass, field
from typing import Iterator

_CLOSED = object()


@dataclass
class Subscription:
    id: int
    user_id: int
    area: str
    queue: "queue.Queue" = field(repr=False)

    def events(self, heartbeat_seconds: float) -> Iterator[dict | None]:
        """
        Yield events as they arrive; None on each idle heartbeat interval.

        Stops when the registry closes or the subscription is removed.
        """
        while True:
            try:
                item = self.queue.get(timeout=heartbeat_seconds)
            except queue.Empty:
                yield None
                continue
            if item is _CLOSED:
                return
            yield item


class ConnectionRegistry:
    def __init__(self, queue_size: int = 100):
        self._queue_size = queue_size
        self._lock = threading.Lock()
        self._subscriptions: dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._open = False
        self.dropped = 0

    def init_app(self, app) -> None:
        self._queue_size = app.config.get("REALTIME_QUEUE_SIZE", self._queue_size)
        app.extensions["realtime"] = self
        self.open()

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        with self._lock:
            self._open = True

    def close(self) -> None:
        with self._lock:
            self._open = False
            subscriptions = list(self._subscriptions.values())
            self._subscriptions.clear()
        for sub in subscriptions:
            self._offer(sub, _CLOSED)

    def subscribe(self, user_id: int, area: str) -> Subscription:
        with self._lock:
            if not self._open:
                raise RuntimeError("Realtime registry is closed")
            sub = Subscription(
                id=next(self._ids),
                user_id=user_id,
                area=area,
                queue=queue.Queue(maxsize=self._queue_size),
            )
            self._subscriptions[sub.id] = sub
            return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            removed = self._subscriptions.pop(sub.id, None)
        if removed is not None:
            self._offer(removed, _CLOSED)

    def connection_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, event: dict, *, user_ids: set[int] | None = None) -> int:
        """
        Fan an event out to subscribers. Returns how many queues accepted it.

        With user_ids, only those users' connections receive the event;
        otherwise every connection does.
        """
        with self._lock:
            if not self._open:
                return 0
            targets = [
                sub for sub in self._subscriptions.values()
                if user_ids is None or sub.user_id in user_ids
            ]
        delivered = 0
        for sub in targets:
            if self._offer(sub, event):
                delivered += 1
        return delivered

    def _offer(self, sub: Subscription, item) -> bool:
        try:
            sub.queue.put_nowait(item)
            return True
        except queue.Full:
            self.dropped += 1
            return False
