"""Tests for event merging and size estimation."""

import json
import sys

import pytest

from analytics_batcher.batcher import estimate_size, merge_events
from analytics_batcher.core import MalformedEventError


def test_merge_with_nothing_pending_returns_incoming():
    incoming = {"x": 1, "nested": {"a": [1, 2]}}

    merged = merge_events(None, incoming)

    assert merged == incoming
    assert merged is not incoming
    assert merged["nested"] is not incoming["nested"]


def test_merge_combines_disjoint_fields():
    assert merge_events({"x": 1}, {"y": 2}) == {"x": 1, "y": 2}


def test_merge_recurses_into_nested_mappings():
    existing = {"page": {"path": "/home", "meta": {"lang": "en"}}, "count": 1}
    incoming = {"page": {"meta": {"theme": "dark"}}, "count": 2}

    merged = merge_events(existing, incoming)

    assert merged == {"page": {"path": "/home", "meta": {"lang": "en", "theme": "dark"}}, "count": 2}


def test_merge_replaces_sequences_wholesale():
    merged = merge_events({"items": [1, 2, 3], "tags": ("a",)}, {"items": [9]})

    assert merged["items"] == [9]
    assert merged["tags"] == ("a",)


def test_merge_replaces_mapping_with_scalar_and_back():
    assert merge_events({"value": {"a": 1}}, {"value": 5}) == {"value": 5}
    assert merge_events({"value": 5}, {"value": {"a": 1}}) == {"value": {"a": 1}}


def test_merge_does_not_mutate_arguments():
    existing = {"page": {"path": "/home"}, "items": [1]}
    incoming = {"page": {"title": "Home"}, "items": [2]}

    merged = merge_events(existing, incoming)
    merged["page"]["path"] = "/changed"
    merged["items"].append(3)

    assert existing == {"page": {"path": "/home"}, "items": [1]}
    assert incoming == {"page": {"title": "Home"}, "items": [2]}


def test_merge_with_itself_is_identity():
    event = {"a": 1, "b": {"c": [1, 2, {"d": 3}]}, "e": "text", "f": None}

    assert merge_events(event, event) == event


def test_merge_rejects_non_mapping():
    with pytest.raises(MalformedEventError):
        merge_events(None, ["not", "a", "mapping"])

    with pytest.raises(MalformedEventError):
        merge_events("stored", {"x": 1})


def test_estimate_size_matches_compact_utf8_json():
    event = {"name": "café", "values": [1, 2], "nested": {"ok": True}}

    expected = len(json.dumps(event, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))

    assert estimate_size(event) == expected
    assert estimate_size({}) == 2


def test_estimate_size_counts_multibyte_characters_as_bytes():
    assert estimate_size({"k": "é"}) == len('{"k":"é"}'.encode("utf-8"))
    assert estimate_size({"k": "é"}) == estimate_size({"k": "e"}) + 1


def test_estimate_size_is_pure():
    event = {"a": {"b": [1, 2, 3]}}

    assert estimate_size(event) == estimate_size(dict(event))
    assert event == {"a": {"b": [1, 2, 3]}}


def test_estimate_size_rejects_unserialisable_events():
    with pytest.raises(MalformedEventError):
        estimate_size({"when": object()})

    with pytest.raises(MalformedEventError):
        estimate_size({"tags": {"a", "b"}})


def test_estimate_size_rejects_circular_events():
    event = {"name": "loop"}
    event["self"] = event

    with pytest.raises(MalformedEventError):
        estimate_size(event)


def nested(depth):
    event = {}
    for _ in range(depth):
        event = {"child": event}
    return event


def test_too_deeply_nested_event_is_malformed():
    event = nested(sys.getrecursionlimit() + 100)

    with pytest.raises(MalformedEventError):
        merge_events(None, event)

    with pytest.raises(MalformedEventError):
        merge_events({"child": {}}, event)

    with pytest.raises(MalformedEventError):
        estimate_size(event)


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_estimate_size_rejects_non_json_floats(value):
    with pytest.raises(MalformedEventError):
        estimate_size({"ratio": value})
