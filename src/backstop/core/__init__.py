"""Core domain models and configuration."""

from backstop.core.config import (
    BackstopConfig,
    BackstopConfigError,
    LoggingConfig,
    NotificationConfig,
    ProbeConfig,
    RetryConfig,
)
from backstop.core.errors import ErrorClassifier, ErrorDetails, ErrorKind, Severity

__all__ = [
    "BackstopConfig",
    "BackstopConfigError",
    "ErrorClassifier",
    "ErrorDetails",
    "ErrorKind",
    "LoggingConfig",
    "NotificationConfig",
    "ProbeConfig",
    "RetryConfig",
    "Severity",
]
