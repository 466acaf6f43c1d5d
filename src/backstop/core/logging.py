"""Structured logging infrastructure for Backstop.

Provides structured logging using structlog with Backstop-specific context
such as the reporting source, operation name and component. Supports console
and JSON output, optionally to a rotating log file.

Example usage:
    from backstop.core.logging import get_logger, configure_logging, with_scope

    # Configure once at startup
    configure_logging(level="DEBUG", format="console")

    # Get a component-specific logger
    logger = get_logger("dispatch")

    # Log with auto-context
    logger.info("error_reported", kind="network")

    # Bind correlation fields for a scope
    with with_scope(ReportScope(source="upload", operation="create_video")):
        logger.warning("retry_scheduled")  # Includes source, operation
"""

from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from backstop.core.config import LoggingConfig

# Field name fragments whose values are never written to logs
SENSITIVE_PATTERNS = frozenset({
    "api_key",
    "apikey",
    "token",
    "secret",
    "password",
    "credential",
    "cookie",
    "bearer",
    "authorization",
})

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


@dataclass(frozen=True)
class ReportScope:
    """Immutable correlation fields attached to every log line in a scope.

    Attributes:
        source: Where failures in this scope originate (e.g. "api", "form", "upload").
        operation: Name of the user-facing operation being attempted.
        scope_id: Unique id for this scope, generated when omitted.
    """

    source: str = "app"
    operation: str | None = None
    scope_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def with_operation(self, operation: str) -> ReportScope:
        """Return a copy of this scope for a different operation."""
        return replace(self, operation=operation)

    def to_dict(self) -> dict[str, Any]:
        """Convert the scope to log fields, omitting unset values."""
        result: dict[str, Any] = {"source": self.source, "scope_id": self.scope_id}
        if self.operation is not None:
            result["operation"] = self.operation
        return result


_current_scope: ContextVar[ReportScope | None] = ContextVar(
    "backstop_scope", default=None
)


def get_current_scope() -> ReportScope | None:
    """Get the active ReportScope, if any."""
    return _current_scope.get()


@contextmanager
def with_scope(scope: ReportScope) -> Iterator[ReportScope]:
    """Context manager that activates a ReportScope for the duration of a block.

    ContextVar storage keeps concurrent asyncio tasks isolated from each other.

    Args:
        scope: The ReportScope to use for the block.

    Yields:
        The ReportScope that was set.
    """
    token = _current_scope.set(scope)
    try:
        yield scope
    finally:
        _current_scope.reset(token)


def _is_sensitive(key: str) -> bool:
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in SENSITIVE_PATTERNS)


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: "[REDACTED]" if _is_sensitive(str(k)) else _redact(v)
            for k, v in value.items()
        }
    return value


def _sanitize_event_dict(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that redacts sensitive fields, including nested dicts."""
    return {
        key: "[REDACTED]" if _is_sensitive(key) else _redact(value)
        for key, value in event_dict.items()
    }


def _add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds an ISO8601 UTC timestamp."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def _add_scope(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds ReportScope fields to log entries.

    Explicitly logged keys take precedence over scope fields.
    """
    scope = get_current_scope()
    if scope is not None:
        for key, value in scope.to_dict().items():
            event_dict.setdefault(key, value)
    return event_dict


class BackstopLogger:
    """Component logger wrapper around structlog.

    The underlying structlog logger is fetched on every call, so loggers
    created at import time still honour a later ``configure_logging()``.
    """

    def __init__(self, component: str, **initial_context: Any) -> None:
        self._component = component
        self._context: dict[str, Any] = {"component": component, **initial_context}

    def _get_logger(self) -> structlog.stdlib.BoundLogger:
        logger: structlog.stdlib.BoundLogger = structlog.get_logger().bind(**self._context)
        return logger

    def bind(self, **context: Any) -> BackstopLogger:
        """Create a new logger with additional bound context."""
        return BackstopLogger(self._component, **{**self._context, **context})

    def unbind(self, *keys: str) -> BackstopLogger:
        """Create a new logger with the given keys removed from its context."""
        remaining = {k: v for k, v in self._context.items() if k not in keys}
        remaining.pop("component", None)
        return BackstopLogger(self._component, **remaining)

    def log(self, level: str, event: str, **kw: Any) -> None:
        """Log at a level given by name ("debug", "info", "warning", "error", "critical")."""
        getattr(self._get_logger(), level)(event, **kw)

    def debug(self, event: str, **kw: Any) -> None:
        self._get_logger().debug(event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._get_logger().info(event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._get_logger().warning(event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._get_logger().error(event, **kw)

    def critical(self, event: str, **kw: Any) -> None:
        self._get_logger().critical(event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        """Log an error with traceback. Call from within an exception handler."""
        self._get_logger().exception(event, **kw)


def _build_processors(format: LogFormat, include_timestamps: bool) -> list[Processor]:  # noqa: A002
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        _sanitize_event_dict,
        _add_scope,
    ]
    if include_timestamps:
        processors.append(_add_timestamp)

    renderer: Processor
    if format == "json":
        renderer = structlog.processors.JSONRenderer(default=str)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    processors.extend([
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ])
    return processors


def configure_logging(
    level: LogLevel = "INFO",
    format: LogFormat = "console",  # noqa: A002
    file_path: Path | None = None,
    max_file_size_mb: int = 10,
    backup_count: int = 3,
    include_timestamps: bool = True,
) -> None:
    """Configure Backstop structured logging.

    Call once at application startup. When ``file_path`` is given, output goes
    to a rotating file instead of stderr.

    Args:
        level: Minimum log level to capture.
        format: "json" for machine-readable lines, "console" for humans.
        file_path: Optional log file path.
        max_file_size_mb: Maximum log file size before rotation (MB).
        backup_count: Number of rotated log files to keep.
        include_timestamps: Whether to include ISO8601 timestamps.
    """
    log_level = getattr(logging, level)

    handler: logging.Handler
    if file_path is not None:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            file_path,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    # cache_logger_on_first_use=False keeps import-time loggers in sync with
    # later reconfiguration
    structlog.configure(
        processors=_build_processors(format, include_timestamps),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def configure_logging_from(config: LoggingConfig) -> None:
    """Configure logging from a LoggingConfig section."""
    configure_logging(
        level=config.level,
        format=config.format,
        file_path=config.file,
        max_file_size_mb=config.max_file_size_mb,
        backup_count=config.backup_count,
        include_timestamps=config.include_timestamps,
    )


def get_logger(component: str, **initial_context: Any) -> BackstopLogger:
    """Get a Backstop logger for a component.

    Args:
        component: The component name (e.g., "dispatch", "retry", "network").
        **initial_context: Additional context to bind.

    Returns:
        A BackstopLogger instance bound to the component.
    """
    return BackstopLogger(component, **initial_context)


__all__ = [
    "BackstopLogger",
    "LogFormat",
    "LogLevel",
    "ReportScope",
    "SENSITIVE_PATTERNS",
    "configure_logging",
    "configure_logging_from",
    "get_current_scope",
    "get_logger",
    "with_scope",
]
