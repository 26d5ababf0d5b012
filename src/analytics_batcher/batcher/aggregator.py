"""Aggregator for merging incoming events into the pending batch."""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Tuple

from loguru import logger

from ..core.events import Event, EventAdded, EventKey, FlushReason, event_added_topic
from ..core.notifications import NotificationBus
from ..store import BatchStore
from .flusher import Flusher
from .merger import estimate_size, merge_events


class Aggregator:
    """Merges events per key and forces a full flush when a merge grows too large."""

    def __init__(self, store: BatchStore, flusher: Flusher, bus: NotificationBus, threshold_bytes: int = 6500):
        """Initialize the aggregator.

        Args:
            store: Pending batch store
            flusher: Flusher used when the size threshold is exceeded
            bus: Bus for event added notifications
            threshold_bytes: Merged size above which the whole batch is flushed
        """
        self.store = store
        self.flusher = flusher
        self.bus = bus
        self.threshold_bytes = threshold_bytes
        self._stats_lock = threading.Lock()

        # Statistics
        self._total_events_added = 0
        self._total_merges = 0
        self._total_threshold_flushes = 0

    def add_event(self, key: EventKey, event: Event) -> Event:
        """Merge an event into the pending entry for its key.

        When the merged entry would exceed the threshold, every pending entry
        (including the previous one for this key) is flushed first and the
        entry for this key restarts from the incoming event alone.

        Calls for the same key must be serialised by the caller.

        Args:
            key: Event key
            event: Event payload

        Returns:
            The event now stored for the key

        Raises:
            MalformedEventError: The event cannot be merged or serialised. The
                store is left untouched.
        """
        return self._admit(key, event, lambda: self.flusher.flush_all(FlushReason.SIZE_THRESHOLD))

    def stage_event(self, key: EventKey, event: Event) -> Tuple[Event, Dict[EventKey, Event]]:
        """Like ``add_event``, but an overflow only drains the batch.

        The drained entries are returned instead of sent, so a caller holding
        a lock can deliver them with ``FlushReason.SIZE_THRESHOLD`` once the
        lock is released.

        Returns:
            The event now stored for the key and the drained entries (empty
            unless the threshold was exceeded)
        """
        drained: Dict[EventKey, Event] = {}
        merged = self._admit(key, event, lambda: drained.update(self.flusher.drain_all()))
        return merged, drained

    def _admit(self, key: EventKey, event: Event, on_overflow: Callable[[], Any]) -> Event:
        existing = self.store.get(key)
        merged = merge_events(existing, event)
        size = estimate_size(merged)
        merged_into_existing = existing is not None

        if size > self.threshold_bytes:
            logger.info(f"Entry for {key} would grow to {size} bytes (> {self.threshold_bytes}), flushing batch")
            with self._stats_lock:
                self._total_threshold_flushes += 1
            on_overflow()
            if merged_into_existing:
                merged = merge_events(None, event)
                size = estimate_size(merged)
                merged_into_existing = False

        self.store.update(key, merged)

        with self._stats_lock:
            self._total_events_added += 1
            if merged_into_existing:
                self._total_merges += 1

        logger.debug(f"Added event for {key} ({size} bytes merged)")

        self.bus.publish(event_added_topic(key), EventAdded(key=key, event=merged))
        return merged

    def get_stats(self) -> Dict[str, Any]:
        """Get aggregator statistics."""
        with self._stats_lock:
            return {
                "total_events_added": self._total_events_added,
                "total_merges": self._total_merges,
                "total_threshold_flushes": self._total_threshold_flushes,
                "threshold_bytes": self.threshold_bytes,
            }
