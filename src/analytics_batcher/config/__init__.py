"""Configuration module for the analytics batcher."""

from .logger_config import setup_logging
from .settings import AnalyticsBatcherConfig, BatcherConfig, ConfigManager, LoggingConfig, get_config_manager, get_current_config

__all__ = ["AnalyticsBatcherConfig", "BatcherConfig", "LoggingConfig", "ConfigManager", "get_config_manager", "get_current_config", "setup_logging"]
