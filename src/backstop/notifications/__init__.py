"""Notification queue: dismissible user-facing messages with lifecycles."""

from backstop.notifications.manager import (
    NotificationManager,
    Snapshot,
    get_notification_manager,
    reset_notification_manager,
)
from backstop.notifications.models import (
    NotificationAction,
    NotificationItem,
    NotificationKind,
    NotificationState,
)
from backstop.notifications.scheduler import AsyncioScheduler, Scheduler, TimerHandle

__all__ = [
    "AsyncioScheduler",
    "NotificationAction",
    "NotificationItem",
    "NotificationKind",
    "NotificationManager",
    "NotificationState",
    "Scheduler",
    "Snapshot",
    "TimerHandle",
    "get_notification_manager",
    "reset_notification_manager",
]
