"""In-process publish/subscribe with explicit, synchronous cancellation.

Subscribers register a plain callable per topic and get a Subscription
handle back. Delivery and cancel() share one re-entrant lock, so once
cancel() returns the callback is never invoked again, even when publish runs
on another thread. Callbacks must be quick and non-blocking (the websocket
layer only enqueues).

Sinks are async forwarders (e.g. the Redis bridge) that see every event
after local delivery. Neither a failing callback nor a failing sink ever
propagates to the publisher.
"""

import logging
import threading
from collections import defaultdict
from collections.abc import Awaitable, Callable

from src.iv_realtime.events import Event, Topic

logger = logging.getLogger(__name__)

Callback = Callable[[Event], None]
Sink = Callable[[Topic, Event], Awaitable[None]]


class Subscription:
    def __init__(self, bus: "EventBus", topic: Topic, callback: Callback) -> None:
        self._bus = bus
        self.topic = topic
        self.callback = callback
        self.active = True

    def cancel(self) -> None:
        """Unregister; idempotent."""
        self._bus._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc: object) -> None:
        self.cancel()


class EventBus:
    def __init__(self) -> None:
        self._subscriptions: dict[Topic, list[Subscription]] = defaultdict(list)
        self._sinks: list[Sink] = []
        self._lock = threading.RLock()

    def subscribe(self, topic: Topic, callback: Callback) -> Subscription:
        sub = Subscription(self, topic, callback)
        with self._lock:
            self._subscriptions[topic].append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            sub.active = False
            subs = self._subscriptions.get(sub.topic)
            if subs and sub in subs:
                subs.remove(sub)
                if not subs:
                    del self._subscriptions[sub.topic]

    def subscriber_count(self, topic: Topic | None = None) -> int:
        with self._lock:
            if topic is not None:
                return len(self._subscriptions.get(topic, []))
            return sum(len(s) for s in self._subscriptions.values())

    def add_sink(self, sink: Sink) -> None:
        self._sinks.append(sink)

    def remove_sink(self, sink: Sink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    async def publish(self, topic: Topic, event: Event) -> int:
        """Deliver to local subscribers, then forward to sinks. Returns local deliveries."""
        with self._lock:
            targets = list(self._subscriptions.get(topic, []))

        delivered = 0
        for sub in targets:
            with self._lock:
                if not sub.active:
                    continue
                try:
                    sub.callback(event)
                    delivered += 1
                except Exception:
                    logger.exception("Subscriber on %s failed", topic.name)

        for sink in list(self._sinks):
            try:
                await sink(topic, event)
            except Exception:
                logger.exception("Event sink failed for %s", topic.name)
        return delivered


_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    global _bus  # noqa: PLW0603
    if _bus is None:
        _bus = EventBus()
    return _bus
