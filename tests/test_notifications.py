"""Tests for the notification bus."""

import threading

from analytics_batcher.core import NotificationBus


def test_publish_fans_out_in_subscription_order():
    bus = NotificationBus()
    calls = []
    bus.subscribe("topic", lambda p: calls.append(("first", p)))
    bus.subscribe("topic", lambda p: calls.append(("second", p)))
    bus.subscribe("other", lambda p: calls.append(("other", p)))

    assert bus.publish("topic", 1) == 2

    assert calls == [("first", 1), ("second", 1)]


def test_publish_without_subscribers_is_dropped():
    bus = NotificationBus()

    assert bus.publish("nobody", {"n": 1}) == 0

    calls = []
    bus.subscribe("nobody", calls.append)
    assert calls == []


def test_unsubscribe():
    bus = NotificationBus()
    calls = []
    unsubscribe = bus.subscribe("topic", calls.append)

    unsubscribe()
    unsubscribe()

    assert bus.publish("topic", 1) == 0
    assert bus.subscriber_count("topic") == 0
    assert calls == []


def test_failing_subscriber_does_not_block_others(log_messages):
    bus = NotificationBus()
    calls = []

    def broken(payload):
        raise ValueError("bad subscriber")

    bus.subscribe("topic", broken)
    bus.subscribe("topic", calls.append)

    assert bus.publish("topic", "payload") == 2

    assert calls == ["payload"]
    assert bus.get_stats()["total_subscriber_errors"] == 1
    assert any("for topic raised" in m for m in log_messages)


def test_subscriber_errors_are_counted_across_threads():
    bus = NotificationBus()

    def broken(payload):
        raise ValueError("bad subscriber")

    bus.subscribe("topic", broken)
    publishers = [threading.Thread(target=lambda: [bus.publish("topic", i) for i in range(50)]) for _ in range(8)]
    for publisher in publishers:
        publisher.start()
    for publisher in publishers:
        publisher.join()

    stats = bus.get_stats()
    assert stats["total_published"] == 400
    assert stats["total_subscriber_errors"] == 400
