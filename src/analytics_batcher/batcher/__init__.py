"""Event batching module: merging, aggregation and flushing."""

from .aggregator import Aggregator
from .flusher import Flusher
from .merger import estimate_size, merge_events

__all__ = ["Aggregator", "Flusher", "merge_events", "estimate_size"]
