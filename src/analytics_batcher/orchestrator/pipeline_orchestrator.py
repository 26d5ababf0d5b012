"""Pipeline orchestrator for the analytics batcher.

This module wires the batching core together:
Producer → Aggregator → BatchStore → (size threshold | debounce | request) → Flusher → Sink

Timers fire on their own threads, so every store change (add, drain, the
debounce generation check) runs while holding one re-entrant lock. A
get/update pair on the store is therefore never interleaved with another
operation. Sink delivery of drained entries happens after the lock is
released, so a slow sink never blocks producers.
"""

from __future__ import annotations

import functools
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from loguru import logger
from pydantic import ValidationError

from ..batcher import Aggregator, Flusher
from ..config.logger_config import setup_logging
from ..config.settings import AnalyticsBatcherConfig, BatcherConfig
from ..core.errors import ConfigError, MalformedEventError
from ..core.events import EVENT_REJECTED_TOPIC, AddEventRequest, Event, EventAdded, EventKey, EventRejected, FlushReason, event_added_topic
from ..core.notifications import NotificationBus
from ..scheduler import DebounceScheduler
from ..sender import ConsoleSink, Sink, create_default_sink
from ..store import BatchStore, InMemoryBatchStore


class BatchingPipeline:
    """Orchestrates aggregation, debounced delivery and flushing."""

    def __init__(
        self,
        config: Optional[BatcherConfig] = None,
        sink: Optional[Sink] = None,
        store: Optional[BatchStore] = None,
        bus: Optional[NotificationBus] = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Batching configuration
            sink: Delivery target for flushed events (console logging if omitted)
            store: Pending batch store (in-memory if omitted)
            bus: Notification bus (a private one if omitted)
        """
        self.config = config or BatcherConfig()
        self.config.validate_or_raise()

        self._lock = threading.RLock()
        self._running = False
        self._start_time: Optional[datetime] = None
        self._total_rejected = 0

        self._init_components(sink or ConsoleSink(), store or InMemoryBatchStore(), bus or NotificationBus())

    def _init_components(self, sink: Sink, store: BatchStore, bus: NotificationBus) -> None:
        """Initialize all pipeline components."""
        self.sink = sink
        self.store = store
        self.bus = bus

        self.flusher = Flusher(store=self.store, sink=self.sink, bus=self.bus)
        self.aggregator = Aggregator(store=self.store, flusher=self.flusher, bus=self.bus, threshold_bytes=self.config.threshold_bytes)
        self.scheduler = self._create_scheduler()

        # Debounce follows the event added notifications of each tracked key
        for key in sorted(self.config.tracked_keys):
            self.bus.subscribe(event_added_topic(key), self._on_event_added)

        logger.debug(f"Initialized batching pipeline (threshold {self.config.threshold_bytes} bytes, quiet period {self.config.quiet_period_ms}ms, tracked keys {sorted(self.config.tracked_keys)})")

    def _create_scheduler(self) -> DebounceScheduler:
        return DebounceScheduler(
            flush_callback=self._flush_debounced,
            quiet_period_ms=self.config.quiet_period_ms,
            tracked_keys=self.config.tracked_keys,
            serial_lock=self._lock,
        )

    def start(self) -> bool:
        """Start accepting events.

        Returns:
            True once running
        """
        with self._lock:
            if self._running:
                logger.warning("Pipeline is already running")
                return True

            if self.scheduler.is_shutdown():
                self.scheduler = self._create_scheduler()

            self._running = True
            self._start_time = datetime.now()

        logger.info("Batching pipeline started")
        return True

    def stop(self) -> int:
        """Stop accepting events, cancel timers and flush everything pending.

        Returns:
            Number of entries delivered by the final flush
        """
        with self._lock:
            if not self._running:
                logger.warning("Pipeline is not running")
                return 0

            self._running = False
            self.scheduler.shutdown()
            pending = self.flusher.drain_all()

        delivered = self.flusher.deliver(pending, FlushReason.SHUTDOWN)
        self._log_final_stats()
        return delivered

    def is_running(self) -> bool:
        return self._running

    def add_event(self, key: EventKey, event: Event) -> bool:
        """Add an event to the batch.

        Args:
            key: Key grouping events that merge together
            event: Event payload

        Returns:
            True if accepted, False if rejected (not running or malformed)
        """
        if not self._running:
            logger.warning(f"Pipeline not running, dropping event for {key}")
            return False

        try:
            request = AddEventRequest(key=key, event=event)
            with self._lock:
                # stop() may have run its final flush since the check above
                if not self._running:
                    logger.warning(f"Pipeline stopped, dropping event for {key}")
                    return False

                _, drained = self.aggregator.stage_event(request.key, request.event)

        except ValidationError as e:
            self._reject(key, MalformedEventError(f"Invalid add event request: {e.error_count()} validation error(s)", key=key))
            return False

        except MalformedEventError as e:
            self._reject(key, e)
            return False

        self.flusher.deliver(drained, FlushReason.SIZE_THRESHOLD)
        return True

    def request_flush_all(self) -> int:
        """Deliver everything pending right away.

        Returns:
            Number of entries delivered successfully
        """
        with self._lock:
            pending = self.flusher.drain_all()

        return self.flusher.deliver(pending, FlushReason.REQUESTED)

    def flush_key(self, key: EventKey) -> bool:
        """Deliver the pending entry for one key right away and cancel its timer.

        Returns:
            True if an entry was delivered
        """
        with self._lock:
            self.scheduler.cancel(key)
            pending = self.flusher.drain_one(key)

        return self.flusher.deliver(pending, FlushReason.REQUESTED) > 0

    def subscribe(self, topic: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Subscribe to pipeline notifications.

        Returns:
            Function that removes the subscription
        """
        return self.bus.subscribe(topic, callback)

    def get_pipeline_stats(self) -> Dict[str, Any]:
        """Get comprehensive pipeline statistics.

        Returns:
            Dictionary with pipeline statistics
        """
        with self._lock:
            pending = self.store.get_all()

        return {
            "pipeline": {
                "running": self._running,
                "start_time": self._start_time.isoformat() if self._start_time else None,
                "uptime_seconds": ((datetime.now() - self._start_time).total_seconds() if self._start_time else 0),
                "pending_keys": list(pending),
                "total_rejected": self._total_rejected,
            },
            "aggregator": self.aggregator.get_stats(),
            "flusher": self.flusher.get_stats(),
            "scheduler": self.scheduler.get_stats(),
            "notifications": self.bus.get_stats(),
        }

    def _on_event_added(self, notification: EventAdded) -> None:
        self.scheduler.touch(notification.key)

    def _flush_debounced(self, key: EventKey) -> Optional[Callable[[], int]]:
        # Runs on a timer thread holding self._lock; the scheduler delivers after releasing it
        pending = self.flusher.drain_one(key)
        if not pending:
            return None
        return functools.partial(self.flusher.deliver, pending, FlushReason.DEBOUNCE)

    def _reject(self, key: EventKey, error: MalformedEventError) -> None:
        with self._lock:
            self._total_rejected += 1
        logger.error(f"Rejected event for {key}: {error}")
        self.bus.publish(EVENT_REJECTED_TOPIC, EventRejected(key=str(key), error=str(error)))

    def _log_final_stats(self) -> None:
        """Log final pipeline statistics on shutdown."""
        try:
            stats = self.get_pipeline_stats()

            logger.info("Final Pipeline Statistics:")
            logger.info(f"  Uptime: {stats['pipeline']['uptime_seconds']:.1f} seconds")
            logger.info(f"  Events added: {stats['aggregator']['total_events_added']}")
            logger.info(f"  Events rejected: {stats['pipeline']['total_rejected']}")
            logger.info(f"  Events sent: {stats['flusher']['total_events_sent']}")
            logger.info(f"  Delivery failures: {stats['flusher']['total_delivery_failures']}")

        except Exception as e:
            logger.error(f"Error logging final stats: {e}")


def create_default_pipeline(
    config: Optional[AnalyticsBatcherConfig] = None,
    sink: Optional[Sink] = None,
    configure_logging: bool = True,
) -> BatchingPipeline:
    """Create a batching pipeline from the full configuration.

    Args:
        config: Full configuration (environment-derived defaults if omitted)
        sink: Explicit sink; otherwise an HTTP sink when a sink URL is
            configured, or console logging
        configure_logging: Install the loguru handlers described by
            ``config.logging``

    Returns:
        Configured, not yet started pipeline

    Raises:
        ConfigError: The configuration is invalid
    """
    config = config or AnalyticsBatcherConfig()

    is_valid, errors = config.validate()
    if not is_valid:
        raise ConfigError("; ".join(errors))

    if configure_logging:
        setup_logging(config.logging)

    if sink is None:
        sink = create_default_sink(config.sink_url) if config.sink_url else ConsoleSink()

    return BatchingPipeline(config=config.batcher, sink=sink)
