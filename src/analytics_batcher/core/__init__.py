"""Core analytics batcher types: events, notifications and errors."""

from .codec import encode_event
from .errors import BatcherError, ConfigError, MalformedEventError, SinkDeliveryError
from .events import (
    DELIVERY_FAILED_TOPIC,
    EVENT_FLUSHED_TOPIC,
    EVENT_REJECTED_TOPIC,
    AddEventRequest,
    DeliveryFailure,
    Event,
    EventAdded,
    EventFlushed,
    EventKey,
    EventRejected,
    FlushReason,
    event_added_topic,
)
from .notifications import NotificationBus

__all__ = [
    # Events
    "Event",
    "EventKey",
    "AddEventRequest",
    "FlushReason",
    "encode_event",
    # Notifications
    "NotificationBus",
    "EventAdded",
    "EventRejected",
    "EventFlushed",
    "DeliveryFailure",
    "event_added_topic",
    "EVENT_REJECTED_TOPIC",
    "EVENT_FLUSHED_TOPIC",
    "DELIVERY_FAILED_TOPIC",
    # Errors
    "BatcherError",
    "MalformedEventError",
    "SinkDeliveryError",
    "ConfigError",
]
