"""Backstop - client-side resilience layer.

Classifies failures into a stable taxonomy, fans classified errors out to
subscribers, surfaces them as dismissible notifications, retries transient
failures with exponential backoff and jitter, and tracks network
reachability.
"""

__version__ = "0.1.0"

from backstop.core.errors import (
    ErrorClassifier,
    ErrorDetails,
    ErrorKind,
    RecoveryAction,
    RecoveryActionKind,
    Severity,
    TransportError,
    classify,
    is_retryable,
)
from backstop.dispatch import ErrorHub, get_error_hub
from backstop.execution import RetryOptions, with_retry
from backstop.handler import ErrorHandler, create_error_handler
from backstop.network import HttpProbe, NetworkMonitor, NetworkState
from backstop.notifications import (
    NotificationAction,
    NotificationItem,
    NotificationKind,
    NotificationManager,
    NotificationState,
    get_notification_manager,
)

__all__ = [
    "__version__",
    "ErrorClassifier",
    "ErrorDetails",
    "ErrorHandler",
    "ErrorHub",
    "ErrorKind",
    "HttpProbe",
    "NetworkMonitor",
    "NetworkState",
    "NotificationAction",
    "NotificationItem",
    "NotificationKind",
    "NotificationManager",
    "NotificationState",
    "RecoveryAction",
    "RecoveryActionKind",
    "RetryOptions",
    "Severity",
    "TransportError",
    "classify",
    "create_error_handler",
    "get_error_hub",
    "get_notification_manager",
    "is_retryable",
    "with_retry",
]
