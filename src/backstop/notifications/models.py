"""Notification item types.

Provides:
- NotificationKind: visual category of an item
- NotificationState: per-item lifecycle state
- NotificationAction: a button offered on an item
- NotificationItem: a queued, dismissible, user-facing message
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from backstop.utils.time import utc_now

ActionVariant = Literal["primary", "secondary", "ghost"]


class NotificationKind(str, Enum):
    """Visual category of a notification item."""

    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    LOADING = "loading"


class NotificationState(str, Enum):
    """Lifecycle state of a notification item.

    CREATED -> VISIBLE -> DISMISSING -> REMOVED. Re-enqueueing an item that
    is still in the queue returns it to VISIBLE.
    """

    CREATED = "created"
    VISIBLE = "visible"
    DISMISSING = "dismissing"
    REMOVED = "removed"


@dataclass(frozen=True)
class NotificationAction:
    """A button rendered on a notification item."""

    id: str
    label: str
    variant: ActionVariant = "secondary"
    handler: Callable[[], Any] | None = field(default=None, compare=False)


@dataclass
class NotificationItem:
    """A queued notification.

    Items are owned and mutated by the NotificationManager; listeners only
    ever receive copies.

    Attributes:
        duration: Seconds before auto-dismiss; 0 disables auto-dismiss.
        persistent: Never auto-dismissed, regardless of ``duration``.
        dismissible: Whether the presentation layer offers a close control.
        generation: Bumped on every re-enqueue so stale timers can tell they
            no longer apply.
    """

    id: str
    kind: NotificationKind
    message: str
    title: str | None = None
    actions: tuple[NotificationAction, ...] = ()
    duration: float = 0.0
    persistent: bool = False
    dismissible: bool = True
    position: str = "top-right"
    state: NotificationState = NotificationState.CREATED
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    on_close: Callable[[], Any] | None = field(default=None, repr=False, compare=False)
    on_action: Callable[[str], Any] | None = field(default=None, repr=False, compare=False)
    generation: int = 0

    @property
    def visible(self) -> bool:
        return self.state in (NotificationState.CREATED, NotificationState.VISIBLE)

    @property
    def auto_dismisses(self) -> bool:
        return not self.persistent and self.duration > 0

    def action(self, action_id: str) -> NotificationAction | None:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None

    def copy(self) -> NotificationItem:
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary for rendering/logging."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "title": self.title,
            "message": self.message,
            "actions": [
                {"id": a.id, "label": a.label, "variant": a.variant} for a in self.actions
            ],
            "duration": self.duration,
            "persistent": self.persistent,
            "dismissible": self.dismissible,
            "position": self.position,
            "state": self.state.value,
            "visible": self.visible,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
