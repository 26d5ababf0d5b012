"""Exception hierarchy for the analytics batcher."""


class BatcherError(Exception):
    """Base class for analytics batcher errors."""


class MalformedEventError(BatcherError, ValueError):
    """An event payload cannot be validated or serialised."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class SinkDeliveryError(BatcherError):
    """A sink failed to deliver a flushed event."""


class ConfigError(BatcherError, ValueError):
    """Configuration values are invalid."""
