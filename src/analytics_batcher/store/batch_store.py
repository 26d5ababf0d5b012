"""Pending batch state keyed by event key.

The store is the single source of truth for events waiting to be flushed.
A key maps to an event only while an entry is pending; storing ``None`` for a
key removes it, so "absent" and "missing" are the same thing.
"""

from __future__ import annotations

import copy
import threading
from typing import Dict, List, Optional, Protocol

from loguru import logger

from ..core.events import Event, EventKey


class BatchStore(Protocol):
    """Protocol for pending batch storage."""

    def get(self, key: EventKey) -> Optional[Event]:
        """Return the pending event for a key, or None."""
        ...

    def get_all(self) -> Dict[EventKey, Event]:
        """Return a snapshot of every pending entry."""
        ...

    def update(self, key: EventKey, event: Optional[Event]) -> None:
        """Insert or replace the entry for a key; None removes it."""
        ...

    def clear_all(self) -> None:
        """Remove every pending entry."""
        ...


class InMemoryBatchStore:
    """Thread-safe in-memory batch store.

    Events are deep-copied on the way in and out so callers never share
    mutable state with the pending batch.
    """

    def __init__(self):
        self._entries: Dict[EventKey, Event] = {}
        self._lock = threading.RLock()

    def get(self, key: EventKey) -> Optional[Event]:
        with self._lock:
            event = self._entries.get(key)
            return copy.deepcopy(event) if event is not None else None

    def get_all(self) -> Dict[EventKey, Event]:
        with self._lock:
            return copy.deepcopy(self._entries)

    def update(self, key: EventKey, event: Optional[Event]) -> None:
        with self._lock:
            if event is None:
                self._entries.pop(key, None)
                logger.debug(f"Removed pending entry for {key}")
            else:
                self._entries[key] = copy.deepcopy(event)

    def clear_all(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()

        if count:
            logger.debug(f"Cleared {count} pending entries")

    def keys(self) -> List[EventKey]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
