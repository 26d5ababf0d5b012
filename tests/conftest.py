"""Shared fixtures for analytics batcher tests."""

import threading
import time
from typing import Callable, List, Optional, Tuple

import pytest
from loguru import logger


class RecordingSink:
    """Sink that records every delivered event."""

    def __init__(self, fail_with: Optional[str] = None):
        self.sent: List[dict] = []
        self.fail_with = fail_with
        self.on_send: Optional[Callable[[dict], None]] = None
        self._lock = threading.Lock()

    def send(self, event: dict) -> Tuple[bool, str]:
        if self.on_send:
            self.on_send(event)
        with self._lock:
            self.sent.append(event)
        if self.fail_with:
            return False, self.fail_with
        return True, ""


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def log_messages():
    """Capture loguru messages emitted during a test."""
    messages: List[str] = []
    handler_id = logger.add(lambda msg: messages.append(msg.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll until predicate is true or the timeout elapses."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def wait_until():
    return wait_for
