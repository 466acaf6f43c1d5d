"""Notification queue manager.

Central queue of ephemeral, dismissible user-facing notifications:
- Enqueues items with auto-dismiss timers and action buttons
- Drives each item through CREATED -> VISIBLE -> DISMISSING -> REMOVED
- Publishes immutable snapshots of the queue to listeners on every change
- Renders classified errors (``from_error``) and can follow an ErrorHub

Example usage:
    manager = NotificationManager()
    manager.attach(hub)

    unsubscribe = manager.subscribe(render)
    item_id = manager.loading("Uploading video...")
    ...
    manager.dismiss(item_id)
    manager.success("Upload complete")
"""

from __future__ import annotations

import inspect
import itertools
import uuid
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from backstop.core.config import NotificationConfig
from backstop.core.errors import (
    ErrorDetails,
    ErrorKind,
    RecoveryAction,
    RecoveryActionKind,
    Severity,
)
from backstop.core.errors.classifier import USER_MESSAGES
from backstop.core.logging import get_logger
from backstop.notifications.models import (
    NotificationAction,
    NotificationItem,
    NotificationKind,
    NotificationState,
)
from backstop.notifications.scheduler import AsyncioScheduler, Scheduler, TimerHandle
from backstop.utils.time import utc_now

if TYPE_CHECKING:
    from backstop.dispatch import ErrorHub

_logger = get_logger("notifications")

Snapshot = tuple[NotificationItem, ...]
SnapshotListener = Callable[[Snapshot], Any]

_UPDATABLE_FIELDS = frozenset({"title", "message", "kind", "actions", "dismissible", "position"})


class NotificationManager:
    """Owns the notification queue and every item's lifecycle.

    Public methods mutate state synchronously and emit exactly one snapshot
    per call (timer-driven removals emit their own). Timers go through a
    Scheduler; each timer callback re-checks that its item and generation
    still exist before acting.
    """

    def __init__(
        self,
        config: NotificationConfig | None = None,
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.config = config or NotificationConfig()
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._items: dict[str, NotificationItem] = {}
        self._timers: dict[str, TimerHandle] = {}
        self._listeners: dict[str, SnapshotListener] = {}
        self._ids = itertools.count(1)

    # ─── Queries ──────────────────────────────────────────────────────

    @property
    def items(self) -> Snapshot:
        """Copies of every live item, oldest first."""
        return tuple(item.copy() for item in self._items.values())

    def visible_items(self, limit: int | None = None) -> Snapshot:
        """The most recent ``limit`` (default ``max_visible``) visible items, oldest first."""
        limit = self.config.max_visible if limit is None else limit
        if limit <= 0:
            return ()
        visible = [item.copy() for item in self._items.values() if item.visible]
        return tuple(visible[-limit:])

    def get(self, item_id: str) -> NotificationItem | None:
        item = self._items.get(item_id)
        return item.copy() if item is not None else None

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    # ─── Subscription ─────────────────────────────────────────────────

    def subscribe(
        self,
        listener: SnapshotListener,
        *,
        replay: bool = True,
    ) -> Callable[[], None]:
        """Register a snapshot listener.

        Args:
            listener: Receives a tuple of item copies on every change.
            replay: Also deliver the current snapshot immediately.

        Returns:
            An idempotent callable that removes the listener.
        """
        sub_id = uuid.uuid4().hex
        self._listeners[sub_id] = listener
        if replay:
            self._deliver(sub_id, listener, self.items)

        def unsubscribe() -> None:
            self._listeners.pop(sub_id, None)

        return unsubscribe

    def attach(self, hub: ErrorHub, *, inline_validation: bool = True) -> Callable[[], None]:
        """Render every error reported to ``hub`` as a notification.

        Validation errors are skipped when ``inline_validation`` is set, since
        those are shown next to the offending fields instead.

        Returns:
            Callable that detaches from the hub.
        """

        def _on_error(details: ErrorDetails) -> None:
            if inline_validation and details.kind is ErrorKind.VALIDATION:
                return
            self.from_error(details)

        return hub.subscribe(_on_error)

    # ─── Mutation ─────────────────────────────────────────────────────

    def enqueue(
        self,
        message: str,
        *,
        id: str | None = None,  # noqa: A002
        kind: NotificationKind = NotificationKind.INFO,
        title: str | None = None,
        duration: float | None = None,
        persistent: bool = False,
        dismissible: bool = True,
        actions: Iterable[NotificationAction] = (),
        position: str | None = None,
        on_close: Callable[[], Any] | None = None,
        on_action: Callable[[str], Any] | None = None,
    ) -> str:
        """Add an item, or replace the live item with the same id.

        A replaced item keeps its place in the queue, returns to VISIBLE and
        has its timers restarted.

        Returns:
            The item id.
        """
        item_id = id or self._next_id()
        if duration is None:
            duration = (
                self.config.error_duration
                if kind is NotificationKind.ERROR
                else self.config.default_duration
            )
        duration = max(0.0, float(duration))
        now = utc_now()

        item = self._items.get(item_id)
        if item is not None:
            self._cancel_timer(item_id)
            item.kind = kind
            item.title = title
            item.message = message
            item.actions = tuple(actions)
            item.duration = duration
            item.persistent = persistent
            item.dismissible = dismissible
            item.position = position or self.config.position
            item.on_close = on_close
            item.on_action = on_action
            item.updated_at = now
            item.generation += 1
            item.state = NotificationState.VISIBLE
            _logger.debug("notification_replaced", item_id=item_id, kind=kind.value)
        else:
            item = NotificationItem(
                id=item_id,
                kind=kind,
                message=message,
                title=title,
                actions=tuple(actions),
                duration=duration,
                persistent=persistent,
                dismissible=dismissible,
                position=position or self.config.position,
                created_at=now,
                updated_at=now,
                on_close=on_close,
                on_action=on_action,
            )
            self._items[item_id] = item
            item.state = NotificationState.VISIBLE
            self._enforce_capacity(keep=item_id)
            _logger.debug("notification_enqueued", item_id=item_id, kind=kind.value)

        if item.auto_dismisses:
            generation = item.generation
            self._timers[item_id] = self._scheduler.call_later(
                duration, lambda: self._auto_dismiss(item_id, generation)
            )

        self._emit()
        return item_id

    def dismiss(self, item_id: str) -> bool:
        """Start dismissing a visible item.

        Returns:
            False if the item is unknown or already dismissing.
        """
        if not self._begin_dismiss(item_id):
            return False
        self._emit()
        return True

    def dismiss_all(self) -> int:
        """Dismiss every visible item. Returns how many were dismissed."""
        count = sum(self._begin_dismiss(item_id) for item_id in list(self._items))
        if count:
            self._emit()
        return count

    def clear_all(self) -> None:
        """Remove every item immediately, calling each ``on_close``."""
        for item_id in list(self._items):
            self._remove(item_id)
        self._emit()

    def update(self, item_id: str, **changes: Any) -> bool:
        """Patch an item's content without touching its timers.

        Accepts ``title``, ``message``, ``kind``, ``actions``, ``dismissible``
        and ``position``.

        Returns:
            False if the item is not in the queue.
        """
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise TypeError(f"Cannot update notification fields: {', '.join(sorted(unknown))}")
        item = self._items.get(item_id)
        if item is None:
            return False
        for name, value in changes.items():
            if name == "actions":
                value = tuple(value)
            setattr(item, name, value)
        item.updated_at = utc_now()
        self._emit()
        return True

    async def invoke_action(self, item_id: str, action_id: str) -> bool:
        """Run an action's handler, then the item's ``on_action`` callback.

        Handler failures are logged, never raised. ``on_action`` is skipped when the
        handler removed the item.

        Returns:
            False if the item or action does not exist.
        """
        item = self._items.get(item_id)
        action = item.action(action_id) if item is not None else None
        if item is None or action is None:
            return False

        if action.handler is not None:
            try:
                result = action.handler()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                _logger.warning(
                    "action_handler_error", item_id=item_id, action_id=action_id, exc_info=True
                )

        # The handler may have removed the item.
        if item_id not in self._items:
            return True
        if item.on_action is not None:
            try:
                item.on_action(action_id)
            except Exception:
                _logger.warning(
                    "on_action_error", item_id=item_id, action_id=action_id, exc_info=True
                )
        return True

    # ─── Convenience constructors ─────────────────────────────────────

    def success(self, message: str, **options: Any) -> str:
        return self.enqueue(message, kind=NotificationKind.SUCCESS, **options)

    def error(self, message: str, **options: Any) -> str:
        return self.enqueue(message, kind=NotificationKind.ERROR, **options)

    def warning(self, message: str, **options: Any) -> str:
        return self.enqueue(message, kind=NotificationKind.WARNING, **options)

    def info(self, message: str, **options: Any) -> str:
        return self.enqueue(message, kind=NotificationKind.INFO, **options)

    def loading(self, message: str, **options: Any) -> str:
        """Persistent, non-dismissible progress item; dismiss or replace it explicitly."""
        options.update(persistent=True, dismissible=False)
        return self.enqueue(message, kind=NotificationKind.LOADING, **options)

    def from_error(
        self,
        details: ErrorDetails,
        *,
        id: str | None = None,  # noqa: A002
        position: str | None = None,
        on_close: Callable[[], Any] | None = None,
        on_action: Callable[[str], Any] | None = None,
    ) -> str:
        """Render a classified error as an error item.

        The title comes from the error kind and actions from its recovery
        actions (retry actions are primary). CRITICAL errors are persistent.
        An UNKNOWN error raised while offline is presented as a connection
        problem.
        """
        title = details.kind.title
        message = details.user_message
        if details.was_offline and details.kind is ErrorKind.UNKNOWN:
            title = ErrorKind.NETWORK.title
            message = USER_MESSAGES["network"]
        if details.correlation_id:
            message = f"{message} (Reference: {details.correlation_id})"

        critical = details.severity >= Severity.CRITICAL
        return self.enqueue(
            message,
            id=id,
            kind=NotificationKind.ERROR,
            title=title,
            duration=0 if critical else None,
            persistent=critical,
            actions=_actions_from(details.recovery_actions),
            position=position,
            on_close=on_close,
            on_action=on_action,
        )

    def shutdown(self) -> None:
        """Cancel every pending timer. Items stay queued but no longer expire."""
        for item_id in list(self._timers):
            self._cancel_timer(item_id)

    # ─── Internal ─────────────────────────────────────────────────────

    def _next_id(self) -> str:
        while True:
            candidate = f"notification-{next(self._ids)}"
            if candidate not in self._items:
                return candidate

    def _begin_dismiss(self, item_id: str) -> bool:
        item = self._items.get(item_id)
        if item is None or not item.visible:
            return False
        self._cancel_timer(item_id)
        item.state = NotificationState.DISMISSING
        item.updated_at = utc_now()
        generation = item.generation
        self._timers[item_id] = self._scheduler.call_later(
            self.config.exit_delay, lambda: self._finish_removal(item_id, generation)
        )
        return True

    def _auto_dismiss(self, item_id: str, generation: int) -> None:
        item = self._items.get(item_id)
        if item is None or item.generation != generation or not item.visible:
            return
        self._timers.pop(item_id, None)
        self.dismiss(item_id)

    def _finish_removal(self, item_id: str, generation: int) -> None:
        item = self._items.get(item_id)
        if item is None or item.generation != generation:
            return
        if item.state is not NotificationState.DISMISSING:
            return
        self._timers.pop(item_id, None)
        self._remove(item_id)
        self._emit()

    def _remove(self, item_id: str) -> NotificationItem | None:
        item = self._items.pop(item_id, None)
        if item is None:
            return None
        self._cancel_timer(item_id)
        item.state = NotificationState.REMOVED
        if item.on_close is not None:
            try:
                item.on_close()
            except Exception:
                _logger.warning("on_close_error", item_id=item_id, exc_info=True)
        return item

    def _enforce_capacity(self, *, keep: str) -> None:
        while len(self._items) > self.config.max_items:
            victim = next(
                (i for i, item in self._items.items() if i != keep and not item.persistent),
                None,
            )
            if victim is None:
                return
            _logger.debug("notification_evicted", item_id=victim)
            self._remove(victim)

    def _cancel_timer(self, item_id: str) -> None:
        handle = self._timers.pop(item_id, None)
        if handle is not None:
            handle.cancel()

    def _emit(self) -> None:
        snapshot = self.items
        for sub_id, listener in list(self._listeners.items()):
            self._deliver(sub_id, listener, snapshot)

    def _deliver(self, sub_id: str, listener: SnapshotListener, snapshot: Snapshot) -> None:
        try:
            listener(snapshot)
        except Exception:
            _logger.warning("listener_error", listener_id=sub_id, exc_info=True)


def _actions_from(actions: Iterable[RecoveryAction]) -> tuple[NotificationAction, ...]:
    result: list[NotificationAction] = []
    seen: set[str] = set()
    for action in actions:
        action_id = action.kind.value
        if action_id in seen:
            action_id = f"{action_id}-{len(result) + 1}"
        seen.add(action_id)
        result.append(
            NotificationAction(
                id=action_id,
                label=action.label,
                variant="primary" if action.kind is RecoveryActionKind.RETRY else "secondary",
                handler=action.handler,
            )
        )
    return tuple(result)


_default_manager: NotificationManager | None = None


def get_notification_manager() -> NotificationManager:
    """Return the process-wide default NotificationManager, creating it on first use."""
    global _default_manager
    if _default_manager is None:
        _default_manager = NotificationManager()
    return _default_manager


def reset_notification_manager() -> None:
    """Forget the process-wide manager, cancelling its timers (primarily for tests)."""
    global _default_manager
    if _default_manager is not None:
        _default_manager.shutdown()
    _default_manager = None
