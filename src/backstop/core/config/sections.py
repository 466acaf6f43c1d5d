"""Per-component configuration models.

Defines models for retry behavior, notification display, the reachability
probe and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from backstop.core.constants import (
    NOTIFICATION_DEFAULT_DURATION_SECONDS,
    NOTIFICATION_DEFAULT_MAX_ITEMS,
    NOTIFICATION_DEFAULT_MAX_VISIBLE,
    NOTIFICATION_DEFAULT_POSITION,
    NOTIFICATION_ERROR_DURATION_SECONDS,
    NOTIFICATION_EXIT_DELAY_SECONDS,
    PROBE_DEFAULT_INTERVAL_SECONDS,
    PROBE_DEFAULT_TIMEOUT_SECONDS,
    RETRY_DEFAULT_BACKOFF_FACTOR,
    RETRY_DEFAULT_BASE_DELAY_SECONDS,
    RETRY_DEFAULT_MAX_ATTEMPTS,
    RETRY_DEFAULT_MAX_DELAY_SECONDS,
)

NotificationPosition = Literal[
    "top-right",
    "top-left",
    "top-center",
    "bottom-right",
    "bottom-left",
    "bottom-center",
]


class RetryConfig(BaseModel):
    """Configuration for retrying transient failures."""

    max_attempts: int = Field(
        default=RETRY_DEFAULT_MAX_ATTEMPTS,
        ge=1,
        description="Total attempts, the first call included",
    )
    base_delay: float = Field(
        default=RETRY_DEFAULT_BASE_DELAY_SECONDS,
        ge=0,
        description="Delay before the second attempt (seconds)",
    )
    max_delay: float = Field(
        default=RETRY_DEFAULT_MAX_DELAY_SECONDS,
        ge=0,
        description="Upper bound for any single delay (seconds)",
    )
    backoff_factor: float = Field(
        default=RETRY_DEFAULT_BACKOFF_FACTOR,
        ge=1,
        description="Exponential backoff multiplier",
    )
    jitter: bool = Field(default=True, description="Perturb delays by up to +/-10%")
    respect_retry_after: bool = Field(
        default=False,
        description="Use a server-provided Retry-After value instead of the computed delay",
    )

    @model_validator(mode="after")
    def _validate_delay_range(self) -> RetryConfig:
        if self.base_delay > self.max_delay:
            raise ValueError(
                f"base_delay ({self.base_delay}) must not exceed max_delay ({self.max_delay})"
            )
        return self


class NotificationConfig(BaseModel):
    """Configuration for the notification queue."""

    max_visible: int = Field(
        default=NOTIFICATION_DEFAULT_MAX_VISIBLE,
        ge=1,
        description="Most recent items a presentation layer renders",
    )
    max_items: int = Field(
        default=NOTIFICATION_DEFAULT_MAX_ITEMS,
        ge=1,
        description="Live items kept before the oldest non-persistent one is evicted",
    )
    position: NotificationPosition = Field(
        default=NOTIFICATION_DEFAULT_POSITION,
        description="Default screen anchor for new items",
    )
    default_duration: float = Field(
        default=NOTIFICATION_DEFAULT_DURATION_SECONDS,
        ge=0,
        description="Auto-dismiss delay for non-error items (0 disables)",
    )
    error_duration: float = Field(
        default=NOTIFICATION_ERROR_DURATION_SECONDS,
        ge=0,
        description="Auto-dismiss delay for error items (0 disables)",
    )
    exit_delay: float = Field(
        default=NOTIFICATION_EXIT_DELAY_SECONDS,
        ge=0,
        description="Delay between dismissal and removal",
    )

    @model_validator(mode="after")
    def _validate_capacity(self) -> NotificationConfig:
        if self.max_visible > self.max_items:
            raise ValueError(
                f"max_visible ({self.max_visible}) must not exceed max_items ({self.max_items})"
            )
        return self


class ProbeConfig(BaseModel):
    """Configuration for the active reachability probe.

    When ``url`` is unset no probe runs and only platform signals drive the
    network state.
    """

    url: str | None = Field(default=None, description="Endpoint for the lightweight GET")
    interval: float = Field(
        default=PROBE_DEFAULT_INTERVAL_SECONDS,
        gt=0,
        description="Seconds between probes while offline",
    )
    timeout: float = Field(
        default=PROBE_DEFAULT_TIMEOUT_SECONDS,
        gt=0,
        description="Hard timeout for a single probe",
    )

    @model_validator(mode="after")
    def _validate_timeout(self) -> ProbeConfig:
        if self.timeout > self.interval:
            raise ValueError(
                f"timeout ({self.timeout}) must not exceed interval ({self.interval})"
            )
        return self


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level to capture",
    )
    format: Literal["json", "console"] = Field(
        default="console",
        description="json for structured lines, console for human-readable output",
    )
    file: Path | None = Field(
        default=None,
        description="Rotating log file; stderr when unset",
    )
    max_file_size_mb: int = Field(default=10, gt=0, le=1000)
    backup_count: int = Field(default=3, ge=0, le=100)
    include_timestamps: bool = Field(default=True)
