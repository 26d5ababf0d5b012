"""Event models for the analytics batcher.

Events themselves are plain nested dictionaries with no fixed schema. This
module defines the inbound request model used to validate them and the
notification payloads published while events move through the batch:
Producer → Aggregator → BatchStore → Flusher → Sink
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

Event = Dict[str, Any]
EventKey = str

# Notification topics
EVENT_ADDED_TOPIC = "event_added"
EVENT_REJECTED_TOPIC = "event_rejected"
EVENT_FLUSHED_TOPIC = "event_flushed"
DELIVERY_FAILED_TOPIC = "delivery_failed"


def event_added_topic(key: EventKey) -> str:
    """Topic carrying EventAdded notifications for one key."""
    return f"{EVENT_ADDED_TOPIC}:{key}"


class FlushReason(str, Enum):
    """Why a pending entry was flushed."""

    SIZE_THRESHOLD = "size_threshold"
    DEBOUNCE = "debounce"
    REQUESTED = "requested"
    SHUTDOWN = "shutdown"


class AddEventRequest(BaseModel):
    """Inbound request to add an event to the batch."""

    model_config = ConfigDict(extra="forbid")

    key: str = Field(..., min_length=1, description="Opaque key grouping events that merge together, used verbatim")
    event: Dict[str, Any] = Field(..., description="Arbitrarily nested event payload")


@dataclass(frozen=True)
class EventAdded:
    """An event was merged into the batch for its key."""

    key: EventKey
    event: Event
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class EventRejected:
    """An event was refused before touching the batch."""

    key: EventKey
    error: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class EventFlushed:
    """A pending entry was delivered to the sink."""

    key: EventKey
    event: Event
    reason: FlushReason
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class DeliveryFailure:
    """The sink rejected a flushed entry. The entry is not restored."""

    key: EventKey
    event: Event
    error: str
    reason: FlushReason
    timestamp: datetime = field(default_factory=datetime.now)
