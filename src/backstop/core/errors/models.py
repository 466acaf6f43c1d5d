"""Data models for error classification.

This module provides:
- TransportError: Typed failure raised by (or adapted from) the HTTP transport
- FieldError: One field-level validation entry
- RecoveryAction: A suggested next step attached to a classified error
- ErrorDetails: Immutable result of classifying a raw failure
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Any

from backstop.utils.time import utc_now

from .codes import ErrorKind, RecoveryActionKind, Severity


class TransportError(Exception):
    """Failure reported by the transport client.

    Attributes:
        status: HTTP status code; 0 or None when no response was received.
        code: Application error code (e.g. "VALIDATION_ERROR").
        details: Structured payload from the error response, if any.
        request_id: Server-issued trace id used as the correlation id.
        retry_after: Seconds the server asked the client to wait, if given.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: str | None = None,
        details: Any = None,
        request_id: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details
        self.request_id = request_id
        self.retry_after = retry_after

    def __repr__(self) -> str:
        return (
            f"TransportError({self.message!r}, status={self.status!r}, "
            f"code={self.code!r}, request_id={self.request_id!r})"
        )


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure.

    Attributes:
        location: Path to the offending value, e.g. ``("body", "prompt")``.
        message: Human-readable explanation from the server.
        type: Machine-readable failure type (e.g. "missing", "string_too_long").
    """

    location: tuple[str | int, ...]
    message: str
    type: str | None = None

    @property
    def field(self) -> str:
        """Dotted field path without the leading request-part segment."""
        parts = list(self.location)
        if len(parts) > 1 and parts[0] in ("body", "query", "path", "header"):
            parts = parts[1:]
        return ".".join(str(p) for p in parts)


@dataclass(frozen=True)
class RecoveryAction:
    """A suggested next step offered alongside a classified error.

    Order matters: the first action of an ErrorDetails is its primary button.
    """

    label: str
    kind: RecoveryActionKind
    handler: Callable[[], Any] | None = field(default=None, compare=False)

    def bind(self, handler: Callable[[], Any] | None) -> RecoveryAction:
        """Return a copy of this action that invokes ``handler``."""
        return replace(self, handler=handler)


@dataclass(frozen=True)
class ErrorDetails:
    """Structured, immutable description of a failure.

    ``raw_message`` is diagnostic text; ``user_message`` is always non-empty
    and safe to render. ``context`` is a read-only mapping; use
    ``with_context()`` to derive a copy with more keys.
    """

    kind: ErrorKind
    severity: Severity
    raw_message: str
    user_message: str
    code: str | None = None
    correlation_id: str | None = None
    occurred_at: datetime = field(default_factory=utc_now)
    context: Mapping[str, Any] = field(default_factory=dict)
    recovery_actions: tuple[RecoveryAction, ...] = ()
    details: Any = None
    field_errors: tuple[FieldError, ...] = ()

    def __post_init__(self) -> None:
        if not self.user_message or not self.user_message.strip():
            raise ValueError("ErrorDetails.user_message must be non-empty")
        object.__setattr__(self, "context", MappingProxyType(dict(self.context)))
        object.__setattr__(self, "recovery_actions", tuple(self.recovery_actions))
        object.__setattr__(self, "field_errors", tuple(self.field_errors))

    def with_context(self, extra: Mapping[str, Any]) -> ErrorDetails:
        """Return a copy whose context is merged with ``extra`` (``extra`` wins)."""
        return replace(self, context={**self.context, **extra})

    def escalate(self, severity: Severity) -> ErrorDetails:
        """Return a copy with ``severity`` applied."""
        return replace(self, severity=severity)

    @property
    def was_offline(self) -> bool:
        """True if the client was offline when this error was classified."""
        return bool(self.context.get("was_offline", False))

    @property
    def primary_action(self) -> RecoveryAction | None:
        return self.recovery_actions[0] if self.recovery_actions else None

    @property
    def is_retryable(self) -> bool:
        return self.kind.is_transient

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary for logging/display."""
        return {
            "kind": self.kind.value,
            "severity": self.severity.name.lower(),
            "raw_message": self.raw_message,
            "user_message": self.user_message,
            "code": self.code,
            "correlation_id": self.correlation_id,
            "occurred_at": self.occurred_at.isoformat(),
            "context": {k: _jsonable(v) for k, v in self.context.items()},
            "recovery_actions": [
                {"label": a.label, "kind": a.kind.value} for a in self.recovery_actions
            ],
            "field_errors": [
                {"field": e.field, "message": e.message, "type": e.type}
                for e in self.field_errors
            ],
        }


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, str | int | float | bool):
        return value
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return repr(value)
