"""Per-key debounce timers for delayed delivery.

Each tracked key owns at most one live timer. Touching a key cancels its timer
and arms a new one; when a timer survives a full quiet period it fires the
flush callback for its key and the key returns to idle.

``threading.Timer.cancel`` cannot stop a timer whose thread has already woken
up, so every timer carries the generation it was armed with. Touching or
cancelling a key bumps its generation, and a timer whose generation is stale
exits without calling back.

The generation check and the flush callback run under the optional serial
lock. If the callback returns a callable, that follow-up runs once the serial
lock has been released, which is where slow work such as sink delivery goes.
"""

from __future__ import annotations

import threading
from contextlib import nullcontext
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

from loguru import logger

from ..core.events import EventKey

FlushCallback = Callable[[EventKey], Optional[Callable[[], Any]]]


class DebounceScheduler:
    """Maintains one cancellable quiet-period timer per tracked key."""

    def __init__(
        self,
        flush_callback: FlushCallback,
        quiet_period_ms: int = 5000,
        tracked_keys: Iterable[EventKey] = frozenset({"A", "B"}),
        serial_lock: Optional[threading.RLock] = None,
    ):
        """Initialize the scheduler.

        Args:
            flush_callback: Called with the key when its quiet period elapses;
                may return a follow-up callable to run outside the serial lock
            quiet_period_ms: Debounce window per key
            tracked_keys: Keys that take part in debounced delivery
            serial_lock: Lock serialising expiry with the rest of the core; the
                generation check and the callback run while it is held, the
                follow-up after it is released
        """
        self.flush_callback = flush_callback
        self.quiet_period_ms = quiet_period_ms
        self.tracked_keys: FrozenSet[EventKey] = frozenset(tracked_keys)

        self._serial_lock = serial_lock
        self._lock = threading.Lock()
        self._timers: Dict[EventKey, threading.Timer] = {}
        self._generations: Dict[EventKey, int] = {}
        self._shutdown = False

        # Statistics
        self._total_touches = 0
        self._total_fired = 0
        self._total_callback_errors = 0

    def is_tracked(self, key: EventKey) -> bool:
        return key in self.tracked_keys

    def touch(self, key: EventKey) -> bool:
        """Restart the quiet period for a key.

        Args:
            key: Event key that just received an event

        Returns:
            True if a timer was armed, False if the key is untracked or the
            scheduler is shut down
        """
        if not self.is_tracked(key):
            logger.debug(f"Ignoring touch for untracked key {key}")
            return False

        with self._lock:
            if self._shutdown:
                logger.warning(f"Scheduler is shut down, not arming timer for {key}")
                return False

            generation = self._cancel_locked(key)
            timer = threading.Timer(self.quiet_period_ms / 1000.0, self._expire, args=(key, generation))
            timer.daemon = True
            self._timers[key] = timer
            self._total_touches += 1
            timer.start()

        logger.debug(f"Armed {self.quiet_period_ms}ms timer for {key}")
        return True

    def cancel(self, key: EventKey) -> bool:
        """Cancel the live timer for a key.

        Returns:
            True if a timer was live
        """
        with self._lock:
            was_armed = key in self._timers
            self._cancel_locked(key)
            return was_armed

    def cancel_all(self) -> int:
        """Cancel every live timer.

        Returns:
            Number of timers cancelled
        """
        with self._lock:
            keys = list(self._timers)
            for key in keys:
                self._cancel_locked(key)
            return len(keys)

    def shutdown(self) -> None:
        """Cancel every timer and refuse further touches."""
        with self._lock:
            self._shutdown = True
        cancelled = self.cancel_all()

        logger.info(f"Debounce scheduler stopped. Stats - Touches: {self._total_touches}, Fired: {self._total_fired}, Cancelled on shutdown: {cancelled}")

    def is_shutdown(self) -> bool:
        with self._lock:
            return self._shutdown

    def is_armed(self, key: EventKey) -> bool:
        with self._lock:
            return key in self._timers

    def pending_keys(self) -> List[EventKey]:
        with self._lock:
            return sorted(self._timers)

    def get_stats(self) -> Dict[str, Any]:
        """Get scheduler statistics."""
        with self._lock:
            return {
                "armed_keys": sorted(self._timers),
                "tracked_keys": sorted(self.tracked_keys),
                "quiet_period_ms": self.quiet_period_ms,
                "total_touches": self._total_touches,
                "total_fired": self._total_fired,
                "total_callback_errors": self._total_callback_errors,
                "shutdown": self._shutdown,
            }

    def _cancel_locked(self, key: EventKey) -> int:
        """Cancel the timer for a key and return the new generation. Lock must be held."""
        timer: Optional[threading.Timer] = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()

        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation
        return generation

    def _expire(self, key: EventKey, generation: int) -> None:
        """Timer thread entry point."""
        with self._serial_lock if self._serial_lock is not None else nullcontext():
            with self._lock:
                if self._generations.get(key) != generation:
                    return

                self._timers.pop(key, None)
                self._total_fired += 1

            logger.debug(f"Quiet period elapsed for {key}")

            try:
                follow_up = self.flush_callback(key)
            except Exception:
                self._record_callback_error(key)
                return

        if callable(follow_up):
            try:
                follow_up()
            except Exception:
                self._record_callback_error(key)

    def _record_callback_error(self, key: EventKey) -> None:
        with self._lock:
            self._total_callback_errors += 1
        logger.exception(f"Debounced flush for {key} failed")
