"""ErrorClassifier implementation.

Maps any raw failure (transport errors, arbitrary exceptions, bare strings
or opaque values) onto an ErrorDetails with a kind, a severity, a safe
user-facing message and an ordered list of recovery actions.

Classification is total: every input yields an ErrorDetails, unmapped
failures resolve to UNKNOWN.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from backstop.core.constants import RETRYABLE_STATUS_CODES
from backstop.core.logging import get_logger

from .codes import ErrorKind, RecoveryActionKind, Severity, TransportCode
from .models import ErrorDetails, RecoveryAction, TransportError
from .parsers import coerce_transport_error, parse_field_errors

# Module-level logger for error classification
_logger = get_logger("errors")


def _coerce(raw: object) -> object:
    """coerce_transport_error that falls back to ``raw`` when adaptation fails."""
    try:
        return coerce_transport_error(raw)
    except Exception:
        _logger.warning(
            "transport_adaptation_failed", error_type=type(raw).__name__, exc_info=True
        )
        return raw


class ConnectivitySource(Protocol):
    """Anything that can report whether the client is currently online."""

    @property
    def is_online(self) -> bool: ...


# =============================================================================
# Recovery plans and user messages, keyed by classification branch.
# Kept as module data so they are reviewable and testable in one place.
# =============================================================================

_RETRY = ("Retry", RecoveryActionKind.RETRY)
_RELOAD = ("Refresh Page", RecoveryActionKind.RELOAD)
_CONTACT = ("Contact Support", RecoveryActionKind.CONTACT_SUPPORT)
_CHOOSE_FILE = ("Choose Different File", RecoveryActionKind.CUSTOM)

_RECOVERY_PLANS: dict[str, tuple[tuple[str, RecoveryActionKind], ...]] = {
    "network": (_RETRY, _RELOAD),
    "authentication": (("Log In", RecoveryActionKind.REAUTHENTICATE),),
    "authorization": (_CONTACT,),
    "validation": (("Fix Input", RecoveryActionKind.CUSTOM),),
    "rate_limit": (("Wait and Retry", RecoveryActionKind.RETRY),),
    "server": (_RETRY, _CONTACT),
    "quota_exceeded": (_CONTACT,),
    "transport_unknown": (_RETRY,),
    "timeout": (_RETRY,),
    "payload_too_large": (_CHOOSE_FILE,),
    "unsupported_format": (_CHOOSE_FILE,),
    "operation_failed": (_RETRY, ("Modify Settings", RecoveryActionKind.CUSTOM)),
    "generic_unknown": (_RETRY,),
    "string": (_RETRY,),
    "opaque": (_RETRY, _RELOAD),
}

GENERIC_USER_MESSAGE = "An unexpected error occurred. Please try again."
GENERIC_VALIDATION_MESSAGE = "Please check your input and try again."
OPAQUE_RAW_MESSAGE = "Unknown error occurred"

USER_MESSAGES: dict[str, str] = {
    "network": "Unable to connect to the server. Please check your internet connection.",
    "authentication": "Your session has expired. Please log in again.",
    "authorization": "You do not have permission to perform this action.",
    "rate_limit": "Too many requests. Please wait a moment and try again.",
    "server": "Server error occurred. Our team has been notified.",
    "quota_exceeded": (
        "You have reached your usage quota. Please try again later or contact support."
    ),
    "transport_unknown": "An error occurred while processing your request.",
    "timeout": "The request timed out. Please try again.",
    "payload_too_large": "File is too large. Please use a smaller file.",
    "unsupported_format": "File format is not supported. Please use a different format.",
    "operation_failed": "Video generation failed. Please try again with different settings.",
    "generic_unknown": GENERIC_USER_MESSAGE,
    "opaque": GENERIC_USER_MESSAGE,
}

# Priority-ordered keyword triggers for generic exceptions
_KEYWORD_RULES: tuple[tuple[str, ErrorKind, Severity, tuple[str, ...]], ...] = (
    ("timeout", ErrorKind.TIMEOUT, Severity.MEDIUM, ("timeout", "timed out", "aborted")),
    ("payload_too_large", ErrorKind.PAYLOAD_TOO_LARGE, Severity.LOW, ("too large", "size limit")),
    (
        "unsupported_format",
        ErrorKind.UNSUPPORTED_FORMAT,
        Severity.LOW,
        ("unsupported", "invalid format"),
    ),
    ("operation_failed", ErrorKind.OPERATION_FAILED, Severity.MEDIUM, ("generation", "creation")),
)

_RETRYABLE_MESSAGE_KEYWORDS = ("network", "connection")

_VALIDATION_PREFIX_RE = re.compile(r"^\s*(validation error|value error)\s*[:,]\s*", re.IGNORECASE)
_FIELD_REQUIRED_RE = re.compile(r"\bfield required\b", re.IGNORECASE)
_CAMEL_RE = re.compile(r"([a-z])([A-Z])")


def normalize_validation_message(message: str | None) -> str:
    """Turn a technical validation message into a readable sentence.

    Strips "Validation error:" style prefixes, rewrites "field required",
    expands snake_case and camelCase into words and capitalizes the result.
    Blank input yields a generic prompt to check the input.
    """
    if not message or not message.strip():
        return GENERIC_VALIDATION_MESSAGE
    text = _VALIDATION_PREFIX_RE.sub("", message.strip())
    text = _FIELD_REQUIRED_RE.sub("This field is required", text)
    text = text.replace("_", " ")
    text = _CAMEL_RE.sub(r"\1 \2", text)
    text = " ".join(text.split())
    if not text:
        return GENERIC_VALIDATION_MESSAGE
    return text[0].upper() + text[1:]


def _message_of(exc: BaseException) -> str:
    try:
        text = str(exc)
    except Exception:
        text = ""
    return text or type(exc).__name__


def _fallback(message: str | None, default: str = GENERIC_USER_MESSAGE) -> str:
    if message and message.strip():
        return message
    return default


class ErrorClassifier:
    """Classifies raw failures into ErrorDetails.

    Optionally consults a ConnectivitySource so that errors raised while the
    client is offline carry ``context["was_offline"] = True``. Recovery
    handlers registered per RecoveryActionKind are bound into every produced
    RecoveryAction of that kind.
    """

    def __init__(
        self,
        connectivity: ConnectivitySource | None = None,
        handlers: Mapping[RecoveryActionKind, Callable[[], Any]] | None = None,
    ) -> None:
        self.connectivity = connectivity
        self._handlers: dict[RecoveryActionKind, Callable[[], Any]] = dict(handlers or {})

    def register_handler(
        self,
        kind: RecoveryActionKind,
        handler: Callable[[], Any] | None,
    ) -> None:
        """Bind (or with None, unbind) the handler used for actions of ``kind``."""
        if handler is None:
            self._handlers.pop(kind, None)
        else:
            self._handlers[kind] = handler

    def classify(self, raw: object) -> ErrorDetails:
        """Classify ``raw`` into an ErrorDetails. Never raises."""
        raw = _coerce(raw)
        if isinstance(raw, TransportError):
            details = self._classify_transport(raw)
        elif isinstance(raw, BaseException):
            details = self._classify_exception(raw)
        elif isinstance(raw, str):
            details = self._classify_string(raw)
        else:
            details = self._classify_opaque(raw)

        if self._is_offline():
            details = details.with_context({"was_offline": True})
        return details

    def is_retryable(self, raw: object, details: ErrorDetails | None = None) -> bool:
        """Whether retrying ``raw`` could plausibly succeed.

        True for transient kinds (network, timeout, rate limit, server), for
        transport errors whose status is absent, 0, 408, 429 or >= 500, and
        for exceptions whose message mentions the network or a connection.
        """
        raw = _coerce(raw)
        if isinstance(raw, TransportError):
            status = raw.status
            if not status or status in RETRYABLE_STATUS_CODES or status >= 500:
                return True
        elif isinstance(raw, BaseException):
            text = _message_of(raw).lower()
            if any(keyword in text for keyword in _RETRYABLE_MESSAGE_KEYWORDS):
                return True
        if details is None:
            details = self.classify(raw)
        return details.kind.is_transient

    # -------------------------------------------------------------------------
    # Branches
    # -------------------------------------------------------------------------

    def _classify_transport(self, exc: TransportError) -> ErrorDetails:
        status = exc.status or 0
        code = exc.code

        if status == 0 or code == TransportCode.NETWORK_ERROR:
            branch, kind, severity = "network", ErrorKind.NETWORK, Severity.HIGH
        elif status == 401:
            branch, kind, severity = "authentication", ErrorKind.AUTHENTICATION, Severity.HIGH
        elif status == 403:
            branch, kind, severity = "authorization", ErrorKind.AUTHORIZATION, Severity.MEDIUM
        elif status == 422 or code == TransportCode.VALIDATION_ERROR:
            return self._build(
                "validation",
                ErrorKind.VALIDATION,
                Severity.LOW,
                raw_message=exc.message,
                user_message=normalize_validation_message(exc.message),
                code=code,
                correlation_id=exc.request_id,
                context={"status": exc.status},
                details=exc.details,
                field_errors=parse_field_errors(exc.details),
            )
        elif status == 429:
            branch, kind, severity = "rate_limit", ErrorKind.RATE_LIMIT, Severity.MEDIUM
        elif status >= 500:
            branch, kind, severity = "server", ErrorKind.SERVER, Severity.HIGH
        elif code == TransportCode.QUOTA_EXCEEDED:
            branch, kind, severity = "quota_exceeded", ErrorKind.QUOTA_EXCEEDED, Severity.MEDIUM
        else:
            branch, kind, severity = "transport_unknown", ErrorKind.UNKNOWN, Severity.MEDIUM

        return self._build(
            branch,
            kind,
            severity,
            raw_message=_fallback(exc.message, f"Request failed with status {status}"),
            user_message=USER_MESSAGES[branch],
            code=code,
            correlation_id=exc.request_id,
            context={"status": exc.status},
            details=exc.details,
        )

    def _classify_exception(self, exc: BaseException) -> ErrorDetails:
        message = _message_of(exc)
        haystack = f"{message} {type(exc).__name__}".lower()
        for branch, kind, severity, keywords in _KEYWORD_RULES:
            if any(keyword in haystack for keyword in keywords):
                break
        else:
            branch, kind, severity = "generic_unknown", ErrorKind.UNKNOWN, Severity.MEDIUM

        return self._build(
            branch,
            kind,
            severity,
            raw_message=message,
            user_message=USER_MESSAGES[branch],
            context={"exception_type": type(exc).__name__},
        )

    def _classify_string(self, raw: str) -> ErrorDetails:
        return self._build(
            "string",
            ErrorKind.UNKNOWN,
            Severity.LOW,
            raw_message=raw,
            user_message=_fallback(raw),
        )

    def _classify_opaque(self, raw: object) -> ErrorDetails:
        return self._build(
            "opaque",
            ErrorKind.UNKNOWN,
            Severity.MEDIUM,
            raw_message=OPAQUE_RAW_MESSAGE,
            user_message=USER_MESSAGES["opaque"],
            context={"original_error": raw},
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _build(
        self,
        branch: str,
        kind: ErrorKind,
        severity: Severity,
        *,
        raw_message: str,
        user_message: str,
        context: Mapping[str, Any] | None = None,
        **extra: Any,
    ) -> ErrorDetails:
        return ErrorDetails(
            kind=kind,
            severity=severity,
            raw_message=raw_message,
            user_message=user_message,
            context=dict(context or {}),
            recovery_actions=self._actions_for(branch),
            **extra,
        )

    def _actions_for(self, branch: str) -> tuple[RecoveryAction, ...]:
        return tuple(
            RecoveryAction(label=label, kind=kind, handler=self._handlers.get(kind))
            for label, kind in _RECOVERY_PLANS[branch]
        )

    def _is_offline(self) -> bool:
        if self.connectivity is None:
            return False
        try:
            return not self.connectivity.is_online
        except Exception:
            _logger.warning("connectivity_check_failed", exc_info=True)
            return False


def is_client_error(raw: object) -> bool:
    """True for transport errors with a 4xx status."""
    raw = _coerce(raw)
    return isinstance(raw, TransportError) and raw.status is not None and 400 <= raw.status < 500


def is_server_error(raw: object) -> bool:
    """True for transport errors with a 5xx status."""
    raw = _coerce(raw)
    return isinstance(raw, TransportError) and raw.status is not None and raw.status >= 500


def is_network_error(raw: object) -> bool:
    """True for transport errors where no response was received."""
    raw = _coerce(raw)
    return isinstance(raw, TransportError) and (
        raw.status == 0 or raw.code == TransportCode.NETWORK_ERROR
    )


_default_classifier = ErrorClassifier()


def classify(raw: object) -> ErrorDetails:
    """Classify ``raw`` with the default (connectivity-unaware) classifier."""
    return _default_classifier.classify(raw)


def is_retryable(raw: object, details: ErrorDetails | None = None) -> bool:
    """Retryability predicate of the default classifier."""
    return _default_classifier.is_retryable(raw, details)
