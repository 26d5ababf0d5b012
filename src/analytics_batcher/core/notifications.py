"""Synchronous fan-out notifications for batch activity.

Subscribers are called in subscription order, in the publishing thread, before
``publish`` returns. There is no queue: a notification published with no
subscribers is simply dropped.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List

from loguru import logger

Subscriber = Callable[[Any], None]


class NotificationBus:
    """Topic-based publish/subscribe for in-process observers."""

    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = defaultdict(list)
        self._lock = threading.RLock()

        # Statistics
        self._total_published = 0
        self._total_subscriber_errors = 0

    def subscribe(self, topic: str, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for a topic.

        Args:
            topic: Topic name
            callback: Called with each payload published on the topic

        Returns:
            Function that removes this subscription
        """
        with self._lock:
            self._subscribers[topic].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(topic, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def publish(self, topic: str, payload: Any) -> int:
        """Deliver a payload to every current subscriber of a topic.

        A subscriber that raises is logged and skipped; the rest still run.

        Returns:
            Number of subscribers called
        """
        with self._lock:
            callbacks = list(self._subscribers.get(topic, ()))
            self._total_published += 1

        for callback in callbacks:
            try:
                callback(payload)
            except Exception:
                with self._lock:
                    self._total_subscriber_errors += 1
                logger.exception(f"Subscriber {callback!r} for {topic} raised")

        return len(callbacks)

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, ()))

    def get_stats(self) -> Dict[str, Any]:
        """Get bus statistics."""
        with self._lock:
            return {
                "topics": sorted(topic for topic, callbacks in self._subscribers.items() if callbacks),
                "total_published": self._total_published,
                "total_subscriber_errors": self._total_subscriber_errors,
            }
