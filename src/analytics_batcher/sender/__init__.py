"""Event delivery module for the analytics batcher."""

from .http_sink import HTTPSink, SinkConfig, create_default_sink
from .sinks import CallbackSink, ConsoleSink, Sink

__all__ = ["Sink", "ConsoleSink", "CallbackSink", "HTTPSink", "SinkConfig", "create_default_sink"]
