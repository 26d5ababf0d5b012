"""Canonical wire encoding for events."""

from __future__ import annotations

import json
from typing import Any

from .errors import MalformedEventError


def encode_event(event: Any) -> bytes:
    """Encode an event to its canonical wire form (compact UTF-8 JSON).

    NaN and infinities are refused since they are not valid JSON.
    """
    try:
        return json.dumps(event, separators=(",", ":"), ensure_ascii=False, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise MalformedEventError(f"Event is not serialisable: {e}") from e
    except RecursionError as e:
        raise MalformedEventError("Event is nested too deeply to serialise") from e
