"""Configuration management for the analytics batcher.

This module provides dataclass-based configuration for the batching core,
logging and outbound sink, with environment variable overrides.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

from loguru import logger

from ..core.errors import ConfigError

DEFAULT_TRACKED_KEYS: FrozenSet[str] = frozenset({"A", "B"})


@dataclass
class BatcherConfig:
    """Configuration for the batching core."""

    threshold_bytes: int = 6500  # Merged size above which the whole batch is flushed
    quiet_period_ms: int = 5000  # Debounce window per tracked key
    tracked_keys: FrozenSet[str] = DEFAULT_TRACKED_KEYS  # Keys with debounced delivery

    def __post_init__(self):
        """Normalise tracked keys to an immutable set."""
        self.tracked_keys = frozenset(self.tracked_keys)

    @property
    def quiet_period_seconds(self) -> float:
        return self.quiet_period_ms / 1000.0

    def validate(self) -> tuple[bool, list[str]]:
        """Validate the configuration.

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors = []

        if self.threshold_bytes <= 0:
            errors.append("Threshold bytes must be positive")

        if self.quiet_period_ms <= 0:
            errors.append("Quiet period must be positive")

        if any(not isinstance(key, str) or not key for key in self.tracked_keys):
            errors.append("Tracked keys must be non-empty strings")

        return len(errors) == 0, errors

    def validate_or_raise(self) -> None:
        is_valid, errors = self.validate()
        if not is_valid:
            raise ConfigError("; ".join(errors))


@dataclass
class LoggingConfig:
    """Configuration for loguru sinks."""

    log_level: str = "INFO"
    log_to_console: bool = True
    log_to_file: bool = False
    log_file_path: Path = field(default_factory=lambda: Path.cwd() / "analytics_batcher.log")
    log_rotation: str = "10 MB"
    log_retention: str = "7 days"


@dataclass
class AnalyticsBatcherConfig:
    """Complete analytics batcher configuration."""

    batcher: BatcherConfig = field(default_factory=BatcherConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Outbound sink; console logging is used when no URL is configured
    sink_url: Optional[str] = None

    def __post_init__(self):
        """Apply environment variable overrides."""
        self._apply_env_overrides()

    def _apply_env_overrides(self):
        """Apply configuration overrides from environment variables."""
        if threshold_bytes := os.getenv("ANALYTICS_BATCHER_THRESHOLD_BYTES"):
            try:
                self.batcher.threshold_bytes = int(threshold_bytes)
            except ValueError:
                logger.warning(f"Invalid threshold bytes: {threshold_bytes}")

        if quiet_period_ms := os.getenv("ANALYTICS_BATCHER_QUIET_PERIOD_MS"):
            try:
                self.batcher.quiet_period_ms = int(quiet_period_ms)
            except ValueError:
                logger.warning(f"Invalid quiet period: {quiet_period_ms}")

        if tracked_keys := os.getenv("ANALYTICS_BATCHER_TRACKED_KEYS"):
            self.batcher.tracked_keys = frozenset(key.strip() for key in tracked_keys.split(",") if key.strip())

        # Logging
        if log_level := os.getenv("ANALYTICS_BATCHER_LOG_LEVEL"):
            self.logging.log_level = log_level.upper()

        if log_to_file := os.getenv("ANALYTICS_BATCHER_LOG_TO_FILE"):
            self.logging.log_to_file = log_to_file.lower() in ("1", "true", "yes", "on")

        if log_file := os.getenv("ANALYTICS_BATCHER_LOG_FILE"):
            self.logging.log_file_path = Path(log_file)

        # Sink
        if sink_url := os.getenv("ANALYTICS_BATCHER_SINK_URL"):
            self.sink_url = sink_url

    def validate(self) -> tuple[bool, list[str]]:
        """Validate the configuration.

        Returns:
            Tuple of (is_valid, error_messages)
        """
        _, errors = self.batcher.validate()

        if self.sink_url is not None and not self.sink_url.startswith(("http://", "https://")):
            errors.append("Sink URL must be an http(s) URL")

        return len(errors) == 0, errors


class ConfigManager:
    """Manages analytics batcher configuration."""

    def __init__(self):
        self._config: Optional[AnalyticsBatcherConfig] = None

    def load_config(
        self,
        threshold_bytes: Optional[int] = None,
        quiet_period_ms: Optional[int] = None,
        tracked_keys: Optional[FrozenSet[str]] = None,
        sink_url: Optional[str] = None,
    ) -> AnalyticsBatcherConfig:
        """Load configuration with optional overrides.

        Explicit arguments win over environment variables.

        Args:
            threshold_bytes: Size threshold override
            quiet_period_ms: Debounce window override
            tracked_keys: Tracked keys override
            sink_url: Sink URL override

        Returns:
            Configured AnalyticsBatcherConfig instance
        """
        config = AnalyticsBatcherConfig()

        if threshold_bytes is not None:
            config.batcher.threshold_bytes = threshold_bytes

        if quiet_period_ms is not None:
            config.batcher.quiet_period_ms = quiet_period_ms

        if tracked_keys is not None:
            config.batcher.tracked_keys = frozenset(tracked_keys)

        if sink_url:
            config.sink_url = sink_url

        self._config = config
        return config

    def get_config(self) -> Optional[AnalyticsBatcherConfig]:
        """Get current configuration."""
        return self._config

    def validate_config(self) -> tuple[bool, list[str]]:
        """Validate current configuration.

        Returns:
            Tuple of (is_valid, error_messages)
        """
        if not self._config:
            return False, ["No configuration loaded"]

        return self._config.validate()


# Global configuration manager instance
_config_manager = ConfigManager()


def get_config_manager() -> ConfigManager:
    """Get the global configuration manager."""
    return _config_manager


def get_current_config() -> Optional[AnalyticsBatcherConfig]:
    """Get the current configuration."""
    return _config_manager.get_config()
