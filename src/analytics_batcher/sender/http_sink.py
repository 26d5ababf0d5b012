"""HTTP sink for delivering flushed events to an analytics collector.

Each flushed event is POSTed as its canonical JSON encoding. Retries with
bounded exponential backoff are the sink's own policy; the batching core
never retries a delivery.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from loguru import logger

from ..core.codec import encode_event
from ..core.errors import SinkDeliveryError
from ..core.events import Event


@dataclass
class SinkConfig:
    """Configuration for the HTTP sink."""

    endpoint_url: str = "http://localhost:8000/collect"  # Collector endpoint
    api_key: str = ""  # Sent as a bearer token when set
    client_name: str = "analytics-batcher"  # User-Agent product token

    # HTTP settings
    timeout_seconds: float = 10.0  # Request timeout
    max_retries: int = 3  # Retry attempts after the first one
    retry_backoff_base: float = 0.5  # Base backoff delay
    retry_backoff_max: float = 30.0  # Maximum backoff delay


class HTTPSink:
    """Delivers events to an HTTP collector endpoint."""

    def __init__(self, config: SinkConfig = SinkConfig()):
        """Initialize the HTTP sink.

        Args:
            config: Sink configuration
        """
        self.config = config

        # Statistics
        self._total_events_sent = 0
        self._total_events_failed = 0
        self._total_bytes_sent = 0
        self._total_send_time = 0.0
        self._last_successful_send: Optional[datetime] = None
        self._last_error: Optional[str] = None

    def send(self, event: Event) -> Tuple[bool, str]:
        """Send one event to the collector.

        Args:
            event: Flushed event to deliver

        Returns:
            Tuple of (success, error_message)
        """
        start_time = time.time()

        try:
            body = encode_event(event)
            success, error_msg = self._send_with_retries(body)

            self._total_send_time += time.time() - start_time

            if success:
                self._total_events_sent += 1
                self._total_bytes_sent += len(body)
                self._last_successful_send = datetime.now()
                self._last_error = None
                logger.debug(f"Delivered {len(body)} bytes to {self.config.endpoint_url}")
            else:
                self._total_events_failed += 1
                self._last_error = error_msg
                logger.error(f"Failed to deliver event to {self.config.endpoint_url}: {error_msg}")

            return success, error_msg

        except Exception as e:
            error_msg = f"Unexpected error sending event: {e}"
            self._total_events_failed += 1
            self._last_error = error_msg
            logger.error(error_msg)
            return False, error_msg

    def send_or_raise(self, event: Event) -> None:
        """Send one event, raising SinkDeliveryError on failure."""
        success, error_msg = self.send(event)
        if not success:
            raise SinkDeliveryError(error_msg)

    def get_stats(self) -> Dict[str, Any]:
        """Get sink statistics.

        Returns:
            Dictionary with sink statistics
        """
        attempts = self._total_events_sent + self._total_events_failed

        return {
            "endpoint_url": self.config.endpoint_url,
            "total_events_sent": self._total_events_sent,
            "total_events_failed": self._total_events_failed,
            "total_bytes_sent": self._total_bytes_sent,
            "success_rate": self._total_events_sent / max(1, attempts),
            "average_send_time_seconds": self._total_send_time / max(1, attempts),
            "last_successful_send": self._last_successful_send.isoformat() if self._last_successful_send else None,
            "last_error": self._last_error,
        }

    def _send_with_retries(self, body: bytes) -> Tuple[bool, str]:
        """Send a body with retry logic.

        Args:
            body: Encoded event

        Returns:
            Tuple of (success, error_message)
        """
        last_error = ""
        attempt = 0

        for attempt in range(self.config.max_retries + 1):
            success, error_msg, retryable = self._send_request(body)
            if success:
                return True, ""

            last_error = error_msg

            # Don't retry on client errors (4xx)
            if not retryable:
                break

            if attempt < self.config.max_retries:
                delay = min(self.config.retry_backoff_base * (2**attempt), self.config.retry_backoff_max)
                logger.warning(f"Send attempt {attempt + 1} failed: {error_msg}. Retrying in {delay:.1f}s...")
                time.sleep(delay)

        return False, f"Failed after {attempt + 1} attempts: {last_error}"

    def _send_request(self, body: bytes) -> Tuple[bool, str, bool]:
        """Send a single HTTP request.

        Returns:
            Tuple of (success, error_message, retryable)
        """
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.config.client_name,
        }
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        req = Request(self.config.endpoint_url, data=body, headers=headers, method="POST")

        try:
            with urlopen(req, timeout=self.config.timeout_seconds) as response:
                if 200 <= response.status < 300:
                    return True, "", False

                return False, f"HTTP {response.status}: {response.reason}", True

        except HTTPError as e:
            error_msg = f"HTTP error: {e.code} {e.reason}"
            return False, error_msg, not 400 <= e.code < 500

        except URLError as e:
            return False, f"Network error: {e.reason}", True

        except Exception as e:
            return False, f"Request error: {e}", True


def create_default_sink(endpoint_url: str, api_key: str = "") -> HTTPSink:
    """Create an HTTP sink with default configuration.

    Args:
        endpoint_url: Collector endpoint
        api_key: Optional bearer token

    Returns:
        Configured HTTP sink
    """
    return HTTPSink(SinkConfig(endpoint_url=endpoint_url, api_key=api_key))
