"""Execution helpers: retrying transient failures with backoff."""

from backstop.execution.retry import (
    RetryOptions,
    backoff_schedule,
    compute_delay,
    with_retry,
)

__all__ = [
    "RetryOptions",
    "backoff_schedule",
    "compute_delay",
    "with_retry",
]
