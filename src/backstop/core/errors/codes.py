"""Error kinds, severity levels and recovery action kinds.

Contains the closed classification enums used throughout Backstop.

Error Kind Taxonomy
===================

Every failure resolves to exactly one kind. Unmapped failures resolve to
UNKNOWN, never to nothing.

    | Kind               | Typical source                  | Retryable | Severity |
    |--------------------|---------------------------------|-----------|----------|
    | NETWORK            | no response / status 0          | Yes       | HIGH     |
    | AUTHENTICATION     | status 401                      | No        | HIGH     |
    | AUTHORIZATION      | status 403                      | No        | MEDIUM   |
    | VALIDATION         | status 422 / VALIDATION_ERROR   | No        | LOW      |
    | RATE_LIMIT         | status 429                      | Yes       | MEDIUM   |
    | SERVER             | status >= 500                   | Yes       | HIGH     |
    | TIMEOUT            | "timeout" / "aborted" messages  | Yes       | MEDIUM   |
    | QUOTA_EXCEEDED     | application code QUOTA_EXCEEDED | No        | MEDIUM   |
    | PAYLOAD_TOO_LARGE  | "too large" / "size limit"      | No        | LOW      |
    | UNSUPPORTED_FORMAT | "unsupported" / "invalid format"| No        | LOW      |
    | OPERATION_FAILED   | "generation" / "creation"       | No        | MEDIUM   |
    | UNKNOWN            | anything else                   | No        | MEDIUM   |

Severity drives the log level of a reported error and whether its
notification may auto-dismiss (CRITICAL never does).
"""

from __future__ import annotations

from enum import Enum, IntEnum


class Severity(IntEnum):
    """Ordered severity levels: LOW < MEDIUM < HIGH < CRITICAL."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def log_level(self) -> str:
        """Logger method name used when an error of this severity is reported."""
        if self is Severity.LOW:
            return "info"
        if self is Severity.MEDIUM:
            return "warning"
        return "error"


class ErrorKind(str, Enum):
    """Closed taxonomy of failure kinds."""

    NETWORK = "network"
    """The client could not reach the server at all."""

    AUTHENTICATION = "authentication"
    """The session is missing or expired."""

    AUTHORIZATION = "authorization"
    """The user is authenticated but not allowed to do this."""

    VALIDATION = "validation"
    """The server rejected the submitted input."""

    RATE_LIMIT = "rate_limit"
    """Too many requests in a short window."""

    SERVER = "server"
    """The server failed while handling a valid request."""

    TIMEOUT = "timeout"
    """The operation did not complete in time or was aborted."""

    QUOTA_EXCEEDED = "quota_exceeded"
    """The account has used up its allowance."""

    PAYLOAD_TOO_LARGE = "payload_too_large"
    """An uploaded file or request body exceeds a size limit."""

    UNSUPPORTED_FORMAT = "unsupported_format"
    """An uploaded file or value is in a format that is not accepted."""

    OPERATION_FAILED = "operation_failed"
    """A domain operation (e.g. video generation) reported failure."""

    UNKNOWN = "unknown"
    """Anything that matched no other rule."""

    @property
    def title(self) -> str:
        """Short user-facing heading for notifications and dialogs."""
        return _TITLES.get(self, "Error")

    @property
    def is_transient(self) -> bool:
        """True for kinds that are worth retrying without user intervention."""
        return self in TRANSIENT_KINDS


_TITLES: dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "Connection Problem",
    ErrorKind.AUTHENTICATION: "Authentication Required",
    ErrorKind.AUTHORIZATION: "Access Denied",
    ErrorKind.VALIDATION: "Input Error",
    ErrorKind.RATE_LIMIT: "Rate Limited",
    ErrorKind.SERVER: "Server Error",
    ErrorKind.TIMEOUT: "Request Timeout",
    ErrorKind.QUOTA_EXCEEDED: "Quota Exceeded",
    ErrorKind.PAYLOAD_TOO_LARGE: "File Too Large",
    ErrorKind.UNSUPPORTED_FORMAT: "Unsupported Format",
    ErrorKind.OPERATION_FAILED: "Generation Failed",
    ErrorKind.UNKNOWN: "Error",
}

TRANSIENT_KINDS: frozenset[ErrorKind] = frozenset({
    ErrorKind.NETWORK,
    ErrorKind.TIMEOUT,
    ErrorKind.RATE_LIMIT,
    ErrorKind.SERVER,
})


class RecoveryActionKind(str, Enum):
    """What a suggested recovery step does when the user picks it."""

    RETRY = "retry"
    RELOAD = "reload"
    REAUTHENTICATE = "reauthenticate"
    CONTACT_SUPPORT = "contact_support"
    CUSTOM = "custom"


class TransportCode:
    """Application error codes produced or recognized by the transport layer."""

    NETWORK_ERROR = "NETWORK_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    TIMEOUT = "TIMEOUT"
    API_ERROR = "API_ERROR"
    UNKNOWN = "UNKNOWN"
