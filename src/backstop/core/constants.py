"""Global constants for Backstop.

Centralizes the default timings and limits shared by the retry engine,
notification manager and reachability monitor. All durations are seconds.
"""

# =============================================================================
# Retry Engine
# =============================================================================

RETRY_DEFAULT_MAX_ATTEMPTS = 3
"""Total attempts (first call included) before the last error is re-raised."""

RETRY_DEFAULT_BASE_DELAY_SECONDS = 1.0
"""Delay before the second attempt when jitter is disabled."""

RETRY_DEFAULT_MAX_DELAY_SECONDS = 30.0
"""Upper bound applied to the exponential delay before jitter."""

RETRY_DEFAULT_BACKOFF_FACTOR = 2.0
"""Multiplier applied to the delay after each failed attempt."""

RETRY_JITTER_RATIO = 0.1
"""Jitter perturbs a delay uniformly within +/- this fraction of it."""

RETRYABLE_STATUS_CODES = frozenset({0, 408, 429})
"""Transport statuses below 500 that are worth retrying (0 = no response)."""

# =============================================================================
# Notifications
# =============================================================================

NOTIFICATION_DEFAULT_DURATION_SECONDS = 5.0
"""Auto-dismiss delay for non-error notifications."""

NOTIFICATION_ERROR_DURATION_SECONDS = 8.0
"""Auto-dismiss delay for error notifications."""

NOTIFICATION_EXIT_DELAY_SECONDS = 0.3
"""Time a dismissed item stays in the collection (not visible) before removal."""

NOTIFICATION_DEFAULT_MAX_VISIBLE = 5
"""Number of most recent items a presentation layer should render."""

NOTIFICATION_DEFAULT_MAX_ITEMS = 50
"""Live items retained before the oldest non-persistent item is evicted."""

NOTIFICATION_DEFAULT_POSITION = "top-right"
"""Screen anchor passed through to the presentation layer."""

# =============================================================================
# Reachability probe
# =============================================================================

PROBE_DEFAULT_INTERVAL_SECONDS = 10.0
"""Time between active probes while the client is offline."""

PROBE_DEFAULT_TIMEOUT_SECONDS = 5.0
"""Hard timeout for a single reachability probe."""

# =============================================================================
# Text limits
# =============================================================================

TRUNCATE_LOG_MESSAGE_CHARS = 500
"""Maximum characters of a raw error message written to a log line."""
