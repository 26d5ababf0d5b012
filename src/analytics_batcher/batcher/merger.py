"""Deep merge and size estimation for batched events."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Optional

from ..core.codec import encode_event
from ..core.errors import MalformedEventError
from ..core.events import Event


def merge_events(existing: Optional[Event], incoming: Event) -> Event:
    """Merge an incoming event into the pending event for the same key.

    Mapping values present on both sides are merged field by field. Any other
    value from ``incoming`` (scalars, lists, tuples) replaces the existing
    one wholesale, so merging an event with itself returns an equal event.
    Neither argument is mutated.

    Args:
        existing: Pending event for the key, or None if nothing is pending
        incoming: Newly submitted event

    Returns:
        A new merged event

    Raises:
        MalformedEventError: Either side is not a mapping, or the event is
            nested deeper than the interpreter can copy
    """
    if not isinstance(incoming, Mapping):
        raise MalformedEventError(f"Event must be a mapping, got {type(incoming).__name__}")

    if existing is not None and not isinstance(existing, Mapping):
        raise MalformedEventError(f"Stored event must be a mapping, got {type(existing).__name__}")

    try:
        if existing is None:
            return _copy_mapping(incoming)
        return _merge_mappings(existing, incoming)
    except RecursionError as e:
        raise MalformedEventError("Event is nested too deeply to merge") from e


def _merge_mappings(base: Mapping, overlay: Mapping) -> dict:
    merged = _copy_mapping(base)
    for field_name, value in overlay.items():
        current = merged.get(field_name)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[field_name] = _merge_mappings(current, value)
        else:
            merged[field_name] = copy.deepcopy(value)
    return merged


def _copy_mapping(value: Mapping) -> dict:
    return {field_name: copy.deepcopy(field_value) for field_name, field_value in value.items()}


def estimate_size(event: Event) -> int:
    """Return the byte length of an event's canonical encoding."""
    if not isinstance(event, Mapping):
        raise MalformedEventError(f"Event must be a mapping, got {type(event).__name__}")
    return len(encode_event(event))
