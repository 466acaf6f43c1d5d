"""Helpers for background asyncio.Task lifecycles.

``log_task_exception`` surfaces the exception of a finished task from a
done-callback so failures in fire-and-forget work are never lost.
"""

from __future__ import annotations

import asyncio
from typing import Any


def log_task_exception(
    task: asyncio.Future[Any],
    logger: Any,
    event: str,
    *,
    level: str = "error",
    **fields: Any,
) -> BaseException | None:
    """Log the exception of a completed task or future, if it has one.

    Args:
        task: The completed task to inspect.
        logger: A BackstopLogger (or anything with level methods).
        event: Structlog-style event name, e.g. ``"probe_loop_died"``.
        level: Logger method name, ``"error"`` by default.
        **fields: Extra key/value fields for the log line.

    Returns:
        The exception, or None if the task succeeded or was cancelled.
    """
    if task.cancelled():
        return None
    exc = task.exception()
    if exc is not None:
        log_fn = getattr(logger, level, logger.error)
        log_fn(event, error=str(exc) or type(exc).__name__, exc_info=exc, **fields)
    return exc
