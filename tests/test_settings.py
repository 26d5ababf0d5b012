"""Tests for configuration management."""

import sys
from pathlib import Path

import pytest

from analytics_batcher.config import AnalyticsBatcherConfig, BatcherConfig, ConfigManager, LoggingConfig, setup_logging
from analytics_batcher.core import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "ANALYTICS_BATCHER_THRESHOLD_BYTES",
        "ANALYTICS_BATCHER_QUIET_PERIOD_MS",
        "ANALYTICS_BATCHER_TRACKED_KEYS",
        "ANALYTICS_BATCHER_LOG_LEVEL",
        "ANALYTICS_BATCHER_LOG_TO_FILE",
        "ANALYTICS_BATCHER_LOG_FILE",
        "ANALYTICS_BATCHER_SINK_URL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = AnalyticsBatcherConfig()

    assert config.batcher.threshold_bytes == 6500
    assert config.batcher.quiet_period_ms == 5000
    assert config.batcher.quiet_period_seconds == 5.0
    assert config.batcher.tracked_keys == frozenset({"A", "B"})
    assert config.sink_url is None
    assert config.validate() == (True, [])


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("ANALYTICS_BATCHER_THRESHOLD_BYTES", "1024")
    monkeypatch.setenv("ANALYTICS_BATCHER_QUIET_PERIOD_MS", "250")
    monkeypatch.setenv("ANALYTICS_BATCHER_TRACKED_KEYS", "page_view, click,,")
    monkeypatch.setenv("ANALYTICS_BATCHER_LOG_LEVEL", "debug")
    monkeypatch.setenv("ANALYTICS_BATCHER_LOG_TO_FILE", "true")
    monkeypatch.setenv("ANALYTICS_BATCHER_LOG_FILE", str(tmp_path / "batcher.log"))
    monkeypatch.setenv("ANALYTICS_BATCHER_SINK_URL", "https://collector.example/collect")

    config = AnalyticsBatcherConfig()

    assert config.batcher.threshold_bytes == 1024
    assert config.batcher.quiet_period_ms == 250
    assert config.batcher.tracked_keys == frozenset({"page_view", "click"})
    assert config.logging.log_level == "DEBUG"
    assert config.logging.log_to_file is True
    assert config.logging.log_file_path == Path(tmp_path / "batcher.log")
    assert config.sink_url == "https://collector.example/collect"


def test_invalid_environment_numbers_are_ignored(monkeypatch, log_messages):
    monkeypatch.setenv("ANALYTICS_BATCHER_THRESHOLD_BYTES", "lots")

    config = AnalyticsBatcherConfig()

    assert config.batcher.threshold_bytes == 6500
    assert any("Invalid threshold bytes: lots" in m for m in log_messages)


def test_batcher_config_validation():
    is_valid, errors = BatcherConfig(threshold_bytes=0, quiet_period_ms=-1, tracked_keys={""}).validate()

    assert not is_valid
    assert "Threshold bytes must be positive" in errors
    assert "Quiet period must be positive" in errors
    assert "Tracked keys must be non-empty strings" in errors

    with pytest.raises(ConfigError):
        BatcherConfig(quiet_period_ms=0).validate_or_raise()


def test_sink_url_must_be_http():
    is_valid, errors = AnalyticsBatcherConfig(sink_url="ftp://collector").validate()

    assert not is_valid
    assert errors == ["Sink URL must be an http(s) URL"]


def test_config_manager_overrides_win():
    manager = ConfigManager()

    assert manager.get_config() is None
    assert manager.validate_config() == (False, ["No configuration loaded"])

    config = manager.load_config(threshold_bytes=2000, quiet_period_ms=100, tracked_keys={"X"}, sink_url="http://localhost:9000/c")

    assert manager.get_config() is config
    assert config.batcher.threshold_bytes == 2000
    assert config.batcher.quiet_period_ms == 100
    assert config.batcher.tracked_keys == frozenset({"X"})
    assert config.sink_url == "http://localhost:9000/c"
    assert manager.validate_config() == (True, [])


def test_setup_logging_writes_to_file(tmp_path):
    log_file = tmp_path / "batcher.log"

    setup_logging(LoggingConfig(log_to_console=False, log_to_file=True, log_file_path=log_file, log_level="INFO"))

    from loguru import logger

    logger.info("hello from the batcher")
    logger.complete()
    logger.remove()
    logger.add(sys.stderr)

    assert "hello from the batcher" in log_file.read_text()
