"""Flusher for delivering pending batch entries to a sink.

Entries are always removed from the store before the sink is called, so a
slow or re-entrant sink can never cause an entry to be cleared twice, and a
failed delivery never reappears in a later flush.

A flush has two steps. ``drain_*`` removes entries from the store and is meant
to run under the caller's lock; ``deliver`` calls the sink and is meant to run
after that lock is released, so a slow sink never holds up producers.
"""

from __future__ import annotations

import threading
from typing import Any, Dict

from loguru import logger

from ..core.events import DELIVERY_FAILED_TOPIC, EVENT_FLUSHED_TOPIC, DeliveryFailure, Event, EventFlushed, EventKey, FlushReason
from ..core.notifications import NotificationBus
from ..sender import Sink
from ..store import BatchStore


class Flusher:
    """Drains the batch store and hands entries to the sink."""

    def __init__(self, store: BatchStore, sink: Sink, bus: NotificationBus):
        """Initialize the flusher.

        Args:
            store: Pending batch store
            sink: Delivery target for flushed events
            bus: Bus for flushed / delivery failure notifications
        """
        self.store = store
        self.sink = sink
        self.bus = bus
        self._stats_lock = threading.Lock()

        # Statistics
        self._total_flush_all = 0
        self._total_flush_one = 0
        self._total_events_sent = 0
        self._total_delivery_failures = 0

    def flush_all(self, reason: FlushReason = FlushReason.REQUESTED) -> int:
        """Deliver every pending entry.

        Args:
            reason: Why the flush happened

        Returns:
            Number of entries delivered successfully
        """
        return self.deliver(self.drain_all(), reason)

    def flush_one(self, key: EventKey, reason: FlushReason = FlushReason.DEBOUNCE) -> bool:
        """Deliver the pending entry for one key.

        Args:
            key: Event key to flush
            reason: Why the flush happened

        Returns:
            True if an entry was delivered, False if nothing was pending or delivery failed
        """
        return self.deliver(self.drain_one(key), reason) > 0

    def drain_all(self) -> Dict[EventKey, Event]:
        """Remove every pending entry from the store without sending it.

        Returns:
            The removed entries in insertion order
        """
        snapshot = self.store.get_all()
        self.store.clear_all()

        with self._stats_lock:
            self._total_flush_all += 1

        return {key: event for key, event in snapshot.items() if event is not None}

    def drain_one(self, key: EventKey) -> Dict[EventKey, Event]:
        """Remove the pending entry for one key without sending it.

        Returns:
            ``{key: event}``, or an empty dict if nothing was pending
        """
        event = self.store.get(key)
        if event is None:
            logger.debug(f"Nothing pending for {key}")
            return {}

        self.store.update(key, None)

        with self._stats_lock:
            self._total_flush_one += 1

        return {key: event}

    def deliver(self, pending: Dict[EventKey, Event], reason: FlushReason) -> int:
        """Send drained entries to the sink.

        Touches neither the store nor any caller lock, so it may run after the
        lock that guarded the drain has been released.

        Returns:
            Number of entries delivered successfully
        """
        if not pending:
            logger.debug(f"Nothing pending to flush ({reason.value})")
            return 0

        logger.info(f"Flushing {len(pending)} pending entries ({reason.value})")

        delivered = 0
        for key, event in pending.items():
            if self._deliver(key, event, reason):
                delivered += 1

        return delivered

    def get_stats(self) -> Dict[str, Any]:
        """Get flusher statistics."""
        with self._stats_lock:
            return {
                "total_flush_all": self._total_flush_all,
                "total_flush_one": self._total_flush_one,
                "total_events_sent": self._total_events_sent,
                "total_delivery_failures": self._total_delivery_failures,
            }

    def _deliver(self, key: EventKey, event: Event, reason: FlushReason) -> bool:
        """Send one entry; failures are reported, never raised or retried."""
        try:
            success, error_msg = self.sink.send(event)
        except Exception as e:
            success, error_msg = False, f"Sink raised {type(e).__name__}: {e}"

        if success:
            with self._stats_lock:
                self._total_events_sent += 1
            logger.debug(f"Delivered entry for {key} ({reason.value})")
            self.bus.publish(EVENT_FLUSHED_TOPIC, EventFlushed(key=key, event=event, reason=reason))
            return True

        with self._stats_lock:
            self._total_delivery_failures += 1
        logger.error(f"Failed to deliver entry for {key}: {error_msg}")
        self.bus.publish(DELIVERY_FAILED_TOPIC, DeliveryFailure(key=key, event=event, error=error_msg, reason=reason))
        return False
