"""Debounced delivery scheduling for the analytics batcher."""

from .debounce_scheduler import DebounceScheduler

__all__ = ["DebounceScheduler"]
