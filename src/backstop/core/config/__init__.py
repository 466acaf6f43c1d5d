"""Configuration models for Backstop.

Pydantic models for loading and validating YAML or environment based
configuration. All models are re-exported from this ``__init__``.
"""

from backstop.core.config.root import BackstopConfig, BackstopConfigError
from backstop.core.config.sections import (
    LoggingConfig,
    NotificationConfig,
    NotificationPosition,
    ProbeConfig,
    RetryConfig,
)

__all__ = [
    "BackstopConfig",
    "BackstopConfigError",
    "LoggingConfig",
    "NotificationConfig",
    "NotificationPosition",
    "ProbeConfig",
    "RetryConfig",
]
