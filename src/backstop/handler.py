"""Error handler facade and composition root.

``ErrorHandler`` bundles the pieces an application touches at a call site:
reporting a failure, guarding an operation, retrying it, and clearing
notifications. ``create_error_handler()`` builds the whole stack from a
BackstopConfig.

Example usage:
    handler = create_error_handler(BackstopConfig.from_yaml(path))
    await handler.start()

    with with_scope(ReportScope(source="api", operation="create_video")):
        video = await handler.run_with_retry(lambda: client.create_video(req))

    await handler.close()
"""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
import random
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from backstop.core.config import BackstopConfig
from backstop.core.errors import ErrorClassifier, ErrorDetails, Severity
from backstop.core.logging import get_current_scope, get_logger
from backstop.dispatch import ErrorHub
from backstop.execution import RetryOptions, with_retry
from backstop.network import HttpProbe, NetworkMonitor
from backstop.notifications import NotificationManager

T = TypeVar("T")

_logger = get_logger("handler")

UNHANDLED_SOURCE = "unhandled_task_exception"


class ErrorHandler:
    """Call-site facade over the hub, notifications, monitor and retry engine.

    When a monitor is given and the hub's classifier has no connectivity
    source yet, the monitor becomes that source. Unless ``attach`` is False,
    errors reported to the hub are rendered as notifications.
    """

    def __init__(
        self,
        hub: ErrorHub,
        notifications: NotificationManager,
        *,
        monitor: NetworkMonitor | None = None,
        retry: RetryOptions | None = None,
        attach: bool = True,
        probe: HttpProbe | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.hub = hub
        self.notifications = notifications
        self.monitor = monitor
        self.retry_options = retry or RetryOptions()
        self._probe = probe
        self._sleep = sleep
        self._rng = rng

        if monitor is not None and hub.classifier.connectivity is None:
            hub.classifier.connectivity = monitor
        self._detach: Callable[[], None] | None = notifications.attach(hub) if attach else None

    @property
    def is_online(self) -> bool:
        return self.monitor.is_online if self.monitor is not None else True

    def report(
        self,
        raw: object,
        *,
        context: Mapping[str, Any] | None = None,
        notify: bool = True,
        severity: Severity | None = None,
    ) -> ErrorDetails:
        """Report a failure through the hub.

        Context is built from the active ReportScope, then ``is_online`` (when
        a monitor is present), then the caller's keys, later keys winning.
        """
        merged: dict[str, Any] = {}
        scope = get_current_scope()
        if scope is not None:
            merged.update(scope.to_dict())
        if self.monitor is not None:
            merged["is_online"] = self.monitor.is_online
        if context:
            merged.update(context)
        return self.hub.report(raw, context=merged, suppress_notify=not notify, severity=severity)

    async def guard(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        context: Mapping[str, Any] | None = None,
    ) -> T:
        """Run ``operation``; on failure report it and re-raise the original error."""
        try:
            return await operation()
        except Exception as exc:
            self.report(exc, context=context)
            raise

    async def run_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        options: RetryOptions | None = None,
        *,
        context: Mapping[str, Any] | None = None,
    ) -> T:
        """Run ``operation`` with retries; report and re-raise the final failure.

        The first retry shows a warning notification so the user knows the
        request is being retried.
        """
        opts = options or self.retry_options
        caller_on_retry = opts.on_retry

        async def _on_retry(attempt: int, exc: BaseException) -> None:
            if attempt == 1:
                self.notifications.warning(
                    f"Request failed, retrying... ({attempt}/{opts.max_attempts})"
                )
            if caller_on_retry is not None:
                result = caller_on_retry(attempt, exc)
                if inspect.isawaitable(result):
                    await result

        try:
            return await with_retry(
                operation,
                dataclasses.replace(opts, on_retry=_on_retry),
                classifier=self.hub.classifier,
                sleep=self._sleep,
                rng=self._rng,
            )
        except Exception as exc:
            self.report(exc, context=context)
            raise

    def clear(self) -> None:
        """Dismiss every visible notification."""
        self.notifications.dismiss_all()

    def install_exception_handler(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> Callable[[], None]:
        """Route exceptions from unawaited failed tasks into ``report``.

        Loop errors without an exception object fall through to the previous
        handler (or the loop's default handler).

        Returns:
            Callable restoring the previous exception handler.
        """
        loop = loop or asyncio.get_running_loop()
        previous = loop.get_exception_handler()

        def _handle(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
            exc = context.get("exception")
            if exc is None:
                if previous is not None:
                    previous(loop, context)
                else:
                    loop.default_exception_handler(context)
                return
            self.report(
                exc,
                context={"source": UNHANDLED_SOURCE, "loop_message": context.get("message")},
            )

        loop.set_exception_handler(_handle)

        def restore() -> None:
            loop.set_exception_handler(previous)

        return restore

    async def start(self) -> None:
        """Start the network monitor, if any."""
        if self.monitor is not None:
            await self.monitor.start()

    async def close(self) -> None:
        """Stop background work and release owned resources."""
        if self.monitor is not None:
            await self.monitor.stop()
        if self._probe is not None:
            await self._probe.close()
        if self._detach is not None:
            self._detach()
            self._detach = None
        self.notifications.shutdown()
        _logger.debug("handler_closed")


def create_error_handler(config: BackstopConfig | None = None) -> ErrorHandler:
    """Build a fully wired ErrorHandler from configuration.

    - a NetworkMonitor with an HttpProbe when ``probe.url`` is set
    - an ErrorHub whose classifier consults that monitor
    - a NotificationManager attached to the hub
    - retry options from the ``retry`` section
    """
    config = config or BackstopConfig()

    probe: HttpProbe | None = None
    monitor: NetworkMonitor | None = None
    if config.probe.url:
        probe = HttpProbe(config.probe.url, timeout=config.probe.timeout)
        monitor = NetworkMonitor(
            probe,
            interval=config.probe.interval,
            timeout=config.probe.timeout,
        )

    hub = ErrorHub(ErrorClassifier(connectivity=monitor))
    notifications = NotificationManager(config.notifications)
    _logger.debug(
        "handler_created",
        probe_url=config.probe.url,
        max_attempts=config.retry.max_attempts,
    )
    return ErrorHandler(
        hub,
        notifications,
        monitor=monitor,
        retry=RetryOptions.from_config(config.retry),
        probe=probe,
    )
