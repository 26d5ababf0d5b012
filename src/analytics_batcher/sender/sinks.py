"""Sink interface and in-process sinks.

A sink delivers one finalized (merged) event. Sinks report the outcome as a
``(success, error_message)`` tuple instead of raising.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, Tuple

from loguru import logger

from ..core.codec import encode_event
from ..core.events import Event


class Sink(Protocol):
    """Protocol for delivery targets of flushed events."""

    def send(self, event: Event) -> Tuple[bool, str]:
        """Deliver one event.

        Returns:
            Tuple of (success, error_message)
        """
        ...


class ConsoleSink:
    """Logs flushed events instead of delivering them anywhere."""

    def __init__(self, level: str = "INFO"):
        self.level = level

    def send(self, event: Event) -> Tuple[bool, str]:
        logger.log(self.level, encode_event(event).decode("utf-8"))
        return True, ""


class CallbackSink:
    """Adapts a plain callable to the sink protocol.

    The callable fails a delivery by returning False or raising; any other
    return value counts as success.
    """

    def __init__(self, callback: Callable[[Event], Optional[Any]], name: Optional[str] = None):
        self.callback = callback
        self.name = name or getattr(callback, "__name__", "callback")

    def send(self, event: Event) -> Tuple[bool, str]:
        try:
            result = self.callback(event)
        except Exception as e:
            return False, f"{self.name} raised {type(e).__name__}: {e}"

        if result is False:
            return False, f"{self.name} rejected the event"

        return True, ""
