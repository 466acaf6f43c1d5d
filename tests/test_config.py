"""Tests for backstop.core.config module."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from backstop.core.config import (
    BackstopConfig,
    BackstopConfigError,
    LoggingConfig,
    NotificationConfig,
    ProbeConfig,
    RetryConfig,
)


class TestRetryConfig:
    """Tests for RetryConfig model."""

    def test_defaults(self):
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.base_delay == 1.0
        assert config.max_delay == 30.0
        assert config.backoff_factor == 2.0
        assert config.jitter is True
        assert config.respect_retry_after is False

    def test_max_attempts_at_least_one(self):
        with pytest.raises(ValidationError):
            RetryConfig(max_attempts=0)

    def test_backoff_factor_at_least_one(self):
        with pytest.raises(ValidationError):
            RetryConfig(backoff_factor=0.5)

    def test_base_delay_must_not_exceed_max(self):
        with pytest.raises(ValidationError, match="base_delay"):
            RetryConfig(base_delay=60, max_delay=30)


class TestNotificationConfig:
    def test_defaults(self):
        config = NotificationConfig()
        assert config.max_visible == 5
        assert config.max_items == 50
        assert config.position == "top-right"
        assert config.default_duration == 5.0
        assert config.error_duration == 8.0
        assert config.exit_delay == 0.3

    def test_invalid_position(self):
        with pytest.raises(ValidationError):
            NotificationConfig(position="middle")

    def test_max_visible_within_max_items(self):
        with pytest.raises(ValidationError, match="max_visible"):
            NotificationConfig(max_visible=10, max_items=5)


class TestProbeConfig:
    def test_defaults(self):
        config = ProbeConfig()
        assert config.url is None
        assert config.interval == 10.0
        assert config.timeout == 5.0

    def test_timeout_within_interval(self):
        with pytest.raises(ValidationError, match="timeout"):
            ProbeConfig(interval=2, timeout=5)

    def test_interval_positive(self):
        with pytest.raises(ValidationError):
            ProbeConfig(interval=0)


class TestLoggingConfig:
    def test_defaults(self):
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.format == "console"
        assert config.file is None

    def test_invalid_level(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="TRACE")


class TestBackstopConfigYaml:
    """YAML loading."""

    def test_empty_document_uses_defaults(self):
        config = BackstopConfig.from_yaml_string("")
        assert config == BackstopConfig()

    def test_sections(self):
        config = BackstopConfig.from_yaml_string(
            """
retry:
  max_attempts: 5
  base_delay: 0.5
notifications:
  position: bottom-center
probe:
  url: https://api.example.com/health
logging:
  level: DEBUG
  format: json
"""
        )
        assert config.retry.max_attempts == 5
        assert config.retry.base_delay == 0.5
        assert config.notifications.position == "bottom-center"
        assert config.probe.url == "https://api.example.com/health"
        assert config.logging.level == "DEBUG"
        assert config.logging.format == "json"

    def test_invalid_yaml(self):
        with pytest.raises(BackstopConfigError, match="Invalid YAML"):
            BackstopConfig.from_yaml_string("retry: [unclosed")

    def test_non_mapping_root(self):
        with pytest.raises(BackstopConfigError, match="mapping"):
            BackstopConfig.from_yaml_string("- a\n- b\n")

    def test_validation_error_wrapped(self):
        with pytest.raises(BackstopConfigError, match="Invalid configuration"):
            BackstopConfig.from_yaml_string("retry:\n  max_attempts: 0\n")

    def test_from_file(self, tmp_path: Path):
        path = tmp_path / "backstop.yaml"
        path.write_text("retry:\n  max_attempts: 7\n")
        assert BackstopConfig.from_yaml(path).retry.max_attempts == 7

    def test_missing_file(self, tmp_path: Path):
        path = tmp_path / "missing.yaml"
        with pytest.raises(BackstopConfigError) as exc_info:
            BackstopConfig.from_yaml(path)
        assert exc_info.value.source == str(path)


class TestBackstopConfigEnv:
    """Environment variable loading."""

    def test_no_variables(self):
        assert BackstopConfig.from_env({}) == BackstopConfig()

    def test_field_overrides(self):
        config = BackstopConfig.from_env(
            {
                "BACKSTOP_RETRY_MAX_ATTEMPTS": "6",
                "BACKSTOP_RETRY_JITTER": "false",
                "BACKSTOP_PROBE_URL": "https://api.example.com/health",
                "BACKSTOP_NOTIFICATIONS_MAX_VISIBLE": "3",
                "UNRELATED": "1",
            }
        )
        assert config.retry.max_attempts == 6
        assert config.retry.jitter is False
        assert config.probe.url == "https://api.example.com/health"
        assert config.notifications.max_visible == 3

    def test_base_file_with_overrides(self, tmp_path: Path):
        path = tmp_path / "base.yaml"
        path.write_text("retry:\n  max_attempts: 4\n  base_delay: 2\n")
        config = BackstopConfig.from_env(
            {"BACKSTOP_CONFIG": str(path), "BACKSTOP_RETRY_MAX_ATTEMPTS": "9"}
        )
        assert config.retry.max_attempts == 9
        assert config.retry.base_delay == 2.0

    def test_invalid_value(self):
        with pytest.raises(BackstopConfigError) as exc_info:
            BackstopConfig.from_env({"BACKSTOP_RETRY_MAX_ATTEMPTS": "many"})
        assert exc_info.value.source == "environment"

    def test_reads_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv("BACKSTOP_PROBE_INTERVAL", "20")
        assert BackstopConfig.from_env().probe.interval == 20.0
