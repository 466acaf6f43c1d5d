"""Tests for backstop.notifications module."""

import asyncio

import pytest

from backstop.core.config import NotificationConfig
from backstop.core.errors import (
    ErrorDetails,
    ErrorKind,
    RecoveryAction,
    RecoveryActionKind,
    Severity,
    TransportError,
    classify,
)
from backstop.dispatch import ErrorHub
from backstop.notifications import (
    AsyncioScheduler,
    NotificationAction,
    NotificationKind,
    NotificationManager,
    NotificationState,
    Scheduler,
    get_notification_manager,
    reset_notification_manager,
)
from tests.helpers import ManualScheduler


def _make(scheduler, **config):
    return NotificationManager(NotificationConfig(**config), scheduler=scheduler)


class TestEnqueue:
    """Adding items to the queue."""

    def test_enqueue_returns_generated_id(self, notifications):
        first = notifications.info("hello")
        second = notifications.info("world")
        assert first == "notification-1"
        assert second == "notification-2"
        assert len(notifications) == 2

    def test_item_fields(self, notifications):
        item_id = notifications.success("Saved", title="Done")
        item = notifications.get(item_id)
        assert item.kind is NotificationKind.SUCCESS
        assert item.message == "Saved"
        assert item.title == "Done"
        assert item.state is NotificationState.VISIBLE
        assert item.duration == 5.0
        assert item.position == "top-right"

    def test_error_default_duration(self, notifications):
        item = notifications.get(notifications.error("Nope"))
        assert item.duration == 8.0

    def test_explicit_duration_and_position(self, notifications):
        item_id = notifications.warning("Careful", duration=2, position="bottom-left")
        item = notifications.get(item_id)
        assert item.duration == 2.0
        assert item.position == "bottom-left"

    def test_loading_is_persistent_and_not_dismissible(self, notifications, scheduler):
        item_id = notifications.loading("Uploading...")
        item = notifications.get(item_id)
        assert item.kind is NotificationKind.LOADING
        assert item.persistent is True
        assert item.dismissible is False
        assert scheduler.pending == []

    def test_get_returns_copy(self, notifications):
        item_id = notifications.info("hello")
        notifications.get(item_id).message = "mutated"
        assert notifications.get(item_id).message == "hello"

    def test_contains(self, notifications):
        item_id = notifications.info("hello")
        assert item_id in notifications
        assert "missing" not in notifications

    def test_generated_id_skips_taken_ids(self, notifications):
        notifications.info("custom", id="notification-1")
        assert notifications.info("auto") == "notification-2"


class TestReplaceById:
    """Re-enqueueing an existing id replaces it in place."""

    def test_replace_keeps_position_in_queue(self, notifications):
        notifications.info("a", id="first")
        notifications.info("b", id="second")
        notifications.success("A done", id="first")
        items = notifications.items
        assert [i.id for i in items] == ["first", "second"]
        assert items[0].message == "A done"
        assert items[0].kind is NotificationKind.SUCCESS
        assert items[0].generation == 1

    def test_reenqueue_emits_once_and_keeps_length(self, notifications):
        snapshots = []
        notifications.subscribe(snapshots.append, replay=False)
        notifications.info("Saving...", id="save")
        notifications.success("Saved", id="save")
        assert len(snapshots) == 2
        assert len(notifications) == 1
        assert [i.message for i in snapshots[-1]] == ["Saved"]

    def test_loading_replaced_by_success_starts_timer(self, notifications, scheduler):
        item_id = notifications.loading("Uploading...", id="upload")
        notifications.success("Uploaded", id=item_id)
        scheduler.advance(5.0)
        assert notifications.get("upload").state is NotificationState.DISMISSING
        scheduler.advance(0.3)
        assert "upload" not in notifications

    def test_stale_timer_ignored_after_replace(self, notifications, scheduler):
        notifications.info("first", id="x", duration=5)
        scheduler.advance(4)
        notifications.info("second", id="x", duration=5)
        scheduler.advance(2)
        assert notifications.get("x").state is NotificationState.VISIBLE
        scheduler.advance(3)
        assert notifications.get("x").state is NotificationState.DISMISSING

    def test_replace_while_dismissing_revives(self, notifications, scheduler):
        notifications.info("bye", id="x")
        notifications.dismiss("x")
        notifications.info("back", id="x", duration=0)
        scheduler.advance(1)
        item = notifications.get("x")
        assert item.state is NotificationState.VISIBLE
        assert item.message == "back"


class TestDismissal:
    """Auto-dismiss, manual dismiss and removal."""

    def test_auto_dismiss_then_removal(self, notifications, scheduler):
        closed = []
        item_id = notifications.info("hi", on_close=lambda: closed.append(True))
        scheduler.advance(4)
        assert notifications.get(item_id).state is NotificationState.VISIBLE
        scheduler.advance(1)
        assert notifications.get(item_id).state is NotificationState.DISMISSING
        assert closed == []
        scheduler.advance(0.3)
        assert item_id not in notifications
        assert closed == [True]

    def test_zero_duration_never_auto_dismisses(self, notifications, scheduler):
        item_id = notifications.info("sticky", duration=0)
        scheduler.advance(1000)
        assert notifications.get(item_id).visible

    def test_persistent_never_auto_dismisses(self, notifications, scheduler):
        item_id = notifications.info("sticky", duration=1, persistent=True)
        scheduler.advance(1000)
        assert notifications.get(item_id).visible

    def test_manual_dismiss(self, notifications, scheduler):
        item_id = notifications.info("hi", duration=0)
        assert notifications.dismiss(item_id) is True
        assert notifications.dismiss(item_id) is False
        scheduler.advance(0.3)
        assert item_id not in notifications

    def test_dismiss_unknown(self, notifications):
        assert notifications.dismiss("nope") is False

    def test_dismiss_cancels_auto_dismiss_timer(self, notifications, scheduler):
        item_id = notifications.info("hi")
        notifications.dismiss(item_id)
        assert len(scheduler.pending) == 1
        assert scheduler.pending[0].due == pytest.approx(0.3)

    def test_dismiss_all(self, notifications, scheduler):
        notifications.info("a")
        notifications.info("b")
        notifications.loading("c")
        assert notifications.dismiss_all() == 3
        assert notifications.dismiss_all() == 0
        scheduler.advance(0.3)
        assert len(notifications) == 0

    def test_clear_all_removes_immediately(self, notifications, scheduler):
        closed = []
        notifications.info("a", on_close=lambda: closed.append("a"))
        notifications.info("b", on_close=lambda: closed.append("b"))
        notifications.clear_all()
        assert len(notifications) == 0
        assert closed == ["a", "b"]
        assert scheduler.pending == []

    def test_on_close_failure_is_isolated(self, notifications):
        def broken():
            raise RuntimeError("close bug")

        notifications.info("a", on_close=broken)
        notifications.clear_all()
        assert len(notifications) == 0

    def test_shutdown_cancels_timers(self, notifications, scheduler):
        item_id = notifications.info("hi")
        notifications.shutdown()
        scheduler.advance(100)
        assert notifications.get(item_id).visible


class TestVisibleItemsAndCapacity:
    def test_visible_items_limited_to_most_recent(self, scheduler):
        manager = _make(scheduler, max_visible=2, max_items=10)
        for n in range(4):
            manager.info(f"m{n}", duration=0)
        assert [i.message for i in manager.visible_items()] == ["m2", "m3"]
        assert len(manager.visible_items(limit=10)) == 4
        assert manager.visible_items(limit=0) == ()

    def test_dismissing_items_not_visible(self, notifications):
        item_id = notifications.info("a")
        notifications.info("b")
        notifications.dismiss(item_id)
        assert [i.message for i in notifications.visible_items()] == ["b"]

    def test_oldest_non_persistent_evicted(self, scheduler):
        manager = _make(scheduler, max_visible=2, max_items=3)
        closed = []
        manager.loading("keep", id="keep")
        manager.info("old", id="old", on_close=lambda: closed.append("old"))
        manager.info("mid", id="mid")
        manager.info("new", id="new")
        assert [i.id for i in manager.items] == ["keep", "mid", "new"]
        assert closed == ["old"]

    def test_all_persistent_allows_overflow(self, scheduler):
        manager = _make(scheduler, max_visible=1, max_items=1)
        manager.loading("a")
        manager.loading("b")
        assert len(manager) == 2


class TestUpdate:
    def test_update_fields(self, notifications):
        item_id = notifications.loading("Uploading 10%")
        assert notifications.update(item_id, message="Uploading 50%", title="Upload") is True
        item = notifications.get(item_id)
        assert item.message == "Uploading 50%"
        assert item.title == "Upload"
        assert item.kind is NotificationKind.LOADING

    def test_update_unknown_item(self, notifications):
        assert notifications.update("nope", message="x") is False

    def test_update_rejects_lifecycle_fields(self, notifications):
        item_id = notifications.info("x")
        with pytest.raises(TypeError, match="duration"):
            notifications.update(item_id, duration=3)


class TestSubscription:
    def test_replay_on_subscribe(self, notifications):
        notifications.info("existing")
        snapshots = []
        notifications.subscribe(snapshots.append)
        assert len(snapshots) == 1
        assert snapshots[0][0].message == "existing"

    def test_no_replay(self, notifications):
        snapshots = []
        notifications.subscribe(snapshots.append, replay=False)
        assert snapshots == []

    def test_one_snapshot_per_mutation(self, notifications, scheduler):
        snapshots = []
        notifications.subscribe(snapshots.append, replay=False)
        item_id = notifications.info("a")
        notifications.update(item_id, message="b")
        notifications.dismiss(item_id)
        scheduler.advance(0.3)
        assert len(snapshots) == 4
        assert snapshots[-1] == ()

    def test_snapshots_are_copies(self, notifications):
        snapshots = []
        notifications.subscribe(snapshots.append, replay=False)
        item_id = notifications.info("a")
        snapshots[0][0].message = "tampered"
        assert notifications.get(item_id).message == "a"

    def test_unsubscribe(self, notifications):
        snapshots = []
        unsubscribe = notifications.subscribe(snapshots.append, replay=False)
        unsubscribe()
        unsubscribe()
        notifications.info("a")
        assert snapshots == []

    def test_failing_listener_isolated(self, notifications):
        snapshots = []

        def broken(snapshot):
            raise RuntimeError("render bug")

        notifications.subscribe(broken, replay=False)
        notifications.subscribe(snapshots.append, replay=False)
        notifications.info("a")
        assert len(snapshots) == 1


class TestActions:
    @pytest.mark.asyncio
    async def test_invoke_action(self, notifications):
        calls = []
        item_id = notifications.error(
            "Failed",
            actions=[NotificationAction("retry", "Retry", handler=lambda: calls.append("h"))],
            on_action=lambda action_id: calls.append(action_id),
        )
        assert await notifications.invoke_action(item_id, "retry") is True
        assert calls == ["h", "retry"]

    @pytest.mark.asyncio
    async def test_async_handler_awaited(self, notifications):
        calls = []

        async def handler():
            calls.append("async")

        item_id = notifications.error(
            "x", actions=[NotificationAction("go", "Go", handler=handler)]
        )
        await notifications.invoke_action(item_id, "go")
        assert calls == ["async"]

    @pytest.mark.asyncio
    async def test_unknown_action(self, notifications):
        item_id = notifications.info("x")
        assert await notifications.invoke_action(item_id, "nope") is False
        assert await notifications.invoke_action("nope", "nope") is False

    @pytest.mark.asyncio
    async def test_handler_failure_isolated(self, notifications):
        calls = []

        def broken():
            raise RuntimeError("handler bug")

        item_id = notifications.error(
            "x",
            actions=[NotificationAction("go", "Go", handler=broken)],
            on_action=calls.append,
        )
        assert await notifications.invoke_action(item_id, "go") is True
        assert calls == ["go"]

    @pytest.mark.asyncio
    async def test_on_action_skipped_when_handler_removes_item(self, notifications):
        calls = []
        item_id = notifications.error(
            "x",
            actions=[NotificationAction("go", "Go", handler=notifications.clear_all)],
            on_action=calls.append,
        )
        assert await notifications.invoke_action(item_id, "go") is True
        assert item_id not in notifications
        assert calls == []


class TestFromError:
    """Rendering classified errors."""

    def test_server_error(self, notifications):
        item_id = notifications.from_error(classify(TransportError("x", status=500)))
        item = notifications.get(item_id)
        assert item.kind is NotificationKind.ERROR
        assert item.title == "Server Error"
        assert item.duration == 8.0
        assert [(a.id, a.label, a.variant) for a in item.actions] == [
            ("retry", "Retry", "primary"),
            ("contact_support", "Contact Support", "secondary"),
        ]

    def test_correlation_reference_appended(self, notifications):
        details = classify(TransportError("x", status=500, request_id="req-42"))
        item = notifications.get(notifications.from_error(details))
        assert item.message.endswith("(Reference: req-42)")

    def test_critical_is_persistent(self, notifications, scheduler):
        details = classify("boom").escalate(Severity.CRITICAL)
        item_id = notifications.from_error(details)
        assert notifications.get(item_id).persistent is True
        scheduler.advance(1000)
        assert item_id in notifications

    def test_unknown_while_offline_presented_as_connection_problem(self, notifications):
        details = classify(RuntimeError("weird")).with_context({"was_offline": True})
        item = notifications.get(notifications.from_error(details))
        assert item.title == "Connection Problem"
        assert "internet connection" in item.message

    def test_duplicate_action_kinds_get_unique_ids(self, notifications):
        details = ErrorDetails(
            kind=ErrorKind.SERVER,
            severity=Severity.HIGH,
            raw_message="x",
            user_message="Server error",
            recovery_actions=(
                RecoveryAction("Retry now", RecoveryActionKind.RETRY),
                RecoveryAction("Retry later", RecoveryActionKind.RETRY),
            ),
        )
        item = notifications.get(notifications.from_error(details))
        assert [a.id for a in item.actions] == ["retry", "retry-2"]

    @pytest.mark.asyncio
    async def test_recovery_handler_reachable_from_action(self, notifications):
        calls = []
        action = RecoveryAction("Log In", RecoveryActionKind.REAUTHENTICATE).bind(
            lambda: calls.append("login")
        )
        details = ErrorDetails(
            kind=ErrorKind.AUTHENTICATION,
            severity=Severity.HIGH,
            raw_message="expired",
            user_message="Please log in",
            recovery_actions=(action,),
        )
        item_id = notifications.from_error(details)
        await notifications.invoke_action(item_id, "reauthenticate")
        assert calls == ["login"]


class TestAttach:
    def test_attached_hub_renders_errors(self, notifications):
        hub = ErrorHub()
        detach = notifications.attach(hub)
        hub.report(TransportError("x", status=503))
        assert len(notifications) == 1
        detach()
        hub.report(TransportError("x", status=503))
        assert len(notifications) == 1

    def test_validation_errors_skipped_by_default(self, notifications):
        hub = ErrorHub()
        notifications.attach(hub)
        hub.report(TransportError("bad", status=422))
        assert len(notifications) == 0

    def test_validation_errors_rendered_when_requested(self, notifications):
        hub = ErrorHub()
        notifications.attach(hub, inline_validation=False)
        hub.report(TransportError("bad", status=422))
        assert len(notifications) == 1

    def test_suppressed_notify_not_rendered(self, notifications):
        hub = ErrorHub()
        notifications.attach(hub)
        hub.report("x", suppress_notify=True)
        assert len(notifications) == 0


class TestScheduler:
    def test_manual_scheduler_satisfies_protocol(self, scheduler):
        assert isinstance(scheduler, Scheduler)

    @pytest.mark.asyncio
    async def test_asyncio_scheduler_uses_running_loop(self):
        manager = NotificationManager(
            NotificationConfig(default_duration=0.01, exit_delay=0.0),
            scheduler=AsyncioScheduler(),
        )
        closed = []
        manager.info("quick", on_close=lambda: closed.append(True))
        for _ in range(50):
            if closed:
                break
            await asyncio.sleep(0.01)
        assert closed == [True]


class TestDefaultManager:
    def test_singleton(self):
        assert get_notification_manager() is get_notification_manager()

    def test_reset(self):
        first = get_notification_manager()
        reset_notification_manager()
        assert get_notification_manager() is not first

    def test_item_to_dict(self):
        manager = NotificationManager(scheduler=ManualScheduler())
        item = manager.get(manager.info("hello", title="Hi"))
        data = item.to_dict()
        assert data["kind"] == "info"
        assert data["title"] == "Hi"
        assert data["state"] == "visible"
        assert data["visible"] is True
