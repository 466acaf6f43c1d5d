"""Process-wide error dispatch hub.

Every reported failure is classified, logged once as a structured
``error_reported`` line and then fanned out synchronously to subscribers
(typically the notification manager). Subscriber failures are isolated:
one raising subscriber never prevents the others from running and never
reaches the reporting call site.

Usage::

    hub = ErrorHub()
    unsubscribe = hub.subscribe(lambda details: print(details.user_message))

    try:
        await upload(file)
    except Exception as exc:
        details = hub.report(exc, context={"operation": "upload"})

    unsubscribe()
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from collections.abc import Callable, Mapping
from typing import Any

from backstop.core.constants import TRUNCATE_LOG_MESSAGE_CHARS
from backstop.core.errors import ErrorClassifier, ErrorDetails, Severity
from backstop.core.logging import get_logger
from backstop.utils.tasks import log_task_exception

_logger = get_logger("dispatch")

ErrorListener = Callable[[ErrorDetails], Any]


class ErrorHub:
    """Pub/sub registry for classified errors.

    Subscribers are invoked in subscription order. The hub holds no lock;
    all mutation happens synchronously within one event-loop turn.
    """

    def __init__(self, classifier: ErrorClassifier | None = None) -> None:
        self.classifier = classifier or ErrorClassifier()
        self._subscribers: dict[str, ErrorListener] = {}
        self._tasks: set[asyncio.Future[Any]] = set()

    def subscribe(self, listener: ErrorListener) -> Callable[[], None]:
        """Register a listener.

        Returns:
            An idempotent callable that removes the listener.
        """
        sub_id = uuid.uuid4().hex
        self._subscribers[sub_id] = listener
        _logger.debug("hub_subscribed", sub_id=sub_id)

        def unsubscribe() -> None:
            if self._subscribers.pop(sub_id, None) is not None:
                _logger.debug("hub_unsubscribed", sub_id=sub_id)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        """Number of active subscribers."""
        return len(self._subscribers)

    def clear(self) -> None:
        """Drop every subscriber."""
        self._subscribers.clear()

    def report(
        self,
        raw: object,
        *,
        context: Mapping[str, Any] | None = None,
        suppress_notify: bool = False,
        suppress_log: bool = False,
        severity: Severity | None = None,
        handler: ErrorListener | None = None,
    ) -> ErrorDetails:
        """Classify, log and fan out a failure.

        Args:
            raw: Any failure value.
            context: Extra context merged over the classifier's keys.
            suppress_notify: Skip subscribers.
            suppress_log: Skip the ``error_reported`` log line.
            severity: Override the classified severity.
            handler: Per-call listener invoked after the subscribers.

        Returns:
            The classified ErrorDetails. Never raises.
        """
        details = self.classifier.classify(raw)
        if context:
            details = details.with_context(context)
        if severity is not None and severity != details.severity:
            details = details.escalate(severity)

        if not suppress_log:
            self._log(details)

        if not suppress_notify:
            for sub_id, listener in list(self._subscribers.items()):
                self._invoke(listener, details, subscriber_id=sub_id)

        if handler is not None:
            self._invoke(handler, details, subscriber_id="handler")

        return details

    def _log(self, details: ErrorDetails) -> None:
        _logger.log(
            details.severity.log_level,
            "error_reported",
            kind=details.kind.value,
            severity=details.severity.name.lower(),
            raw_message=details.raw_message[:TRUNCATE_LOG_MESSAGE_CHARS],
            user_message=details.user_message,
            code=details.code,
            correlation_id=details.correlation_id,
            context=dict(details.context),
        )

    def _invoke(
        self,
        listener: ErrorListener,
        details: ErrorDetails,
        *,
        subscriber_id: str,
    ) -> None:
        try:
            result = listener(details)
            if inspect.isawaitable(result):
                self._schedule(result, subscriber_id)
        except Exception:
            _logger.warning(
                "subscriber_error",
                subscriber_id=subscriber_id,
                kind=details.kind.value,
                exc_info=True,
            )

    def _schedule(self, awaitable: Any, subscriber_id: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running loop: the coroutine can never be awaited
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            _logger.warning("subscriber_coroutine_dropped", subscriber_id=subscriber_id)
            return
        task = asyncio.ensure_future(awaitable, loop=loop)
        self._tasks.add(task)

        def _done(t: asyncio.Future[Any]) -> None:
            self._tasks.discard(t)
            log_task_exception(
                t, _logger, "subscriber_error", level="warning", subscriber_id=subscriber_id
            )

        task.add_done_callback(_done)


_default_hub: ErrorHub | None = None


def get_error_hub() -> ErrorHub:
    """Return the process-wide default ErrorHub, creating it on first use."""
    global _default_hub
    if _default_hub is None:
        _default_hub = ErrorHub()
    return _default_hub


def reset_error_hub() -> None:
    """Forget the process-wide hub (primarily for tests)."""
    global _default_hub
    _default_hub = None
