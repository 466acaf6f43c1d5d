"""Network reachability monitor.

Tracks whether the client can reach the server. Two signals drive it:

- Platform online/offline events (edge-triggered), fed in through
  ``set_platform_status()`` / ``handle_online()`` / ``handle_offline()``
- A periodic active probe that only runs while the state is offline. A
  successful probe flips the state back online even if the platform still
  reports offline (captive portals and flaky adapters make the OS signal
  lag reality).

Downtime is accumulated at the moment the state returns online.

Usage::

    monitor = NetworkMonitor(HttpProbe("https://api.example.com/health"))
    await monitor.start()
    monitor.handle_offline()
    ...
    await monitor.stop()
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from backstop.core.constants import PROBE_DEFAULT_INTERVAL_SECONDS, PROBE_DEFAULT_TIMEOUT_SECONDS
from backstop.core.logging import get_logger
from backstop.utils.tasks import log_task_exception
from backstop.utils.time import format_downtime, utc_now

_logger = get_logger("network")

Probe = Callable[[], Awaitable[bool]]
StateListener = Callable[["NetworkState"], Any]


@dataclass(frozen=True)
class NetworkState:
    """Point-in-time reachability reading."""

    is_online: bool
    platform_online: bool
    last_offline_at: datetime | None
    cumulative_downtime: timedelta
    last_downtime: timedelta | None
    probing: bool

    @property
    def downtime_label(self) -> str | None:
        """Human-readable length of the last outage, if there was one."""
        if self.last_downtime is None:
            return None
        return format_downtime(self.last_downtime)


class NetworkMonitor:
    """Connectivity state machine with an active reconciliation probe.

    All state changes happen synchronously; the only background work is
    the probe task, which exists only while started and offline.
    """

    def __init__(
        self,
        probe: Probe | None = None,
        *,
        interval: float = PROBE_DEFAULT_INTERVAL_SECONDS,
        timeout: float = PROBE_DEFAULT_TIMEOUT_SECONDS,
        on_status_change: Callable[[bool], Any] | None = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        platform_online: bool = True,
    ) -> None:
        self._probe = probe
        self.interval = interval
        self.timeout = timeout
        self._on_status_change = on_status_change
        self._clock = clock
        self._sleep = sleep

        self._platform_online = platform_online
        self._is_online = platform_online
        self._last_offline_at: datetime | None = None if platform_online else clock()
        self._cumulative_downtime = timedelta()
        self._last_downtime: timedelta | None = None

        self._listeners: dict[str, StateListener] = {}
        self._task: asyncio.Task[None] | None = None
        self._running = False

    # ─── State ────────────────────────────────────────────────────────

    @property
    def is_online(self) -> bool:
        return self._is_online

    @property
    def probing(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def state(self) -> NetworkState:
        """Immutable snapshot of the current state."""
        return NetworkState(
            is_online=self._is_online,
            platform_online=self._platform_online,
            last_offline_at=self._last_offline_at,
            cumulative_downtime=self._cumulative_downtime,
            last_downtime=self._last_downtime,
            probing=self.probing,
        )

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener for state transitions.

        Returns:
            An idempotent callable that removes the listener.
        """
        sub_id = uuid.uuid4().hex
        self._listeners[sub_id] = listener

        def unsubscribe() -> None:
            self._listeners.pop(sub_id, None)

        return unsubscribe

    # ─── Platform signals ─────────────────────────────────────────────

    def set_platform_status(self, online: bool) -> None:
        """Feed a platform online/offline event. Repeated values are ignored."""
        self._platform_online = online
        if online and not self._is_online:
            self._go_online(source="platform")
        elif not online and self._is_online:
            self._go_offline(source="platform")

    def handle_online(self) -> None:
        self.set_platform_status(True)

    def handle_offline(self) -> None:
        self.set_platform_status(False)

    # ─── Lifecycle ────────────────────────────────────────────────────

    async def start(self) -> None:
        """Start monitoring; probes immediately begin if currently offline."""
        if self._running:
            return
        self._running = True
        _logger.info("monitor_started", interval=self.interval, is_online=self._is_online)
        self._ensure_probe_loop()

    async def stop(self) -> None:
        """Stop monitoring and cancel the probe task."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        _logger.info("monitor_stopped")

    async def check_connectivity(self) -> bool:
        """Run one probe under the hard timeout.

        Without a probe, the platform signal is the only source of truth.
        Timeouts and probe exceptions count as unreachable.
        """
        if self._probe is None:
            return self._platform_online
        try:
            return bool(await asyncio.wait_for(self._probe(), timeout=self.timeout))
        except TimeoutError:
            _logger.debug("probe_timeout", timeout=self.timeout)
            return False
        except Exception:
            _logger.warning("probe_error", exc_info=True)
            return False

    # ─── Internal ─────────────────────────────────────────────────────

    def _ensure_probe_loop(self) -> None:
        if not self._running or self._is_online or self._probe is None:
            return
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(
            self._probe_loop(), name="backstop-network-probe"
        )
        self._task.add_done_callback(self._on_loop_done)

    def _on_loop_done(self, task: asyncio.Task[None]) -> None:
        log_task_exception(task, _logger, "probe_loop_died")

    async def _probe_loop(self) -> None:
        while self._running and not self._is_online:
            await self._sleep(self.interval)
            if not self._running or self._is_online:
                break
            if await self.check_connectivity() and not self._is_online:
                self._go_online(source="probe")

    def _go_offline(self, *, source: str) -> None:
        self._is_online = False
        self._last_offline_at = self._clock()
        _logger.warning("network_offline", source=source)
        self._notify()
        self._ensure_probe_loop()

    def _go_online(self, *, source: str) -> None:
        now = self._clock()
        self._is_online = True
        if self._last_offline_at is not None:
            downtime = max(timedelta(), now - self._last_offline_at)
            self._cumulative_downtime += downtime
            self._last_downtime = downtime
            self._last_offline_at = None
        _logger.info(
            "network_online",
            source=source,
            downtime=format_downtime(self._last_downtime or timedelta()),
        )
        self._notify()

    def _notify(self) -> None:
        if self._on_status_change is not None:
            try:
                self._on_status_change(self._is_online)
            except Exception:
                _logger.warning("status_callback_error", exc_info=True)

        state = self.state
        for sub_id, listener in list(self._listeners.items()):
            try:
                listener(state)
            except Exception:
                _logger.warning("state_listener_error", listener_id=sub_id, exc_info=True)
