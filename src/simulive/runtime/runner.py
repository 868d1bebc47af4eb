"""Timer loop around a :class:`PlaybackSession`.

Scheduling is single-threaded and cooperative: every timer is an asyncio
task on one event loop. Calibration is the only blocking I/O; it runs in a
worker thread via :func:`asyncio.to_thread`, so sync ticks and countdown
updates keep running on the previously known offset meanwhile.

Timers owned by the runner:

- re-sync tick every ``schedule.sync_interval_ms``
- countdown ticker (display refresh, default 1 s)
- recalibration interval (default 60 s)
- heartbeat check (default 5 s nominal, 2 s divergence threshold)

:meth:`SessionRunner.stop` cancels all of them together with any pending
resume-after-pause callback.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable

import structlog

from ..domain.schedule import StreamSchedule
from .clock import ClockOffset, ClockSynchronizer, HeartbeatMonitor
from .player import PlayerCursor
from .session import PlaybackSession, TokenFetcher

_log = structlog.get_logger(__name__)

DEFAULT_INITIAL_SYNC_DELAY_S = 0.5
DEFAULT_COUNTDOWN_INTERVAL_S = 1.0
DEFAULT_RECALIBRATE_INTERVAL_S = 60.0


class SessionRunner:
    """Drives one viewer session until :meth:`stop` is called.

    Parameters
    ----------
    session:
        The state machine to drive.
    heartbeat:
        Sleep/resume detector; divergence triggers a recalibration.
    recalibrate_interval_s:
        Safety-net recalibration period.
    countdown_interval_s:
        Display refresh period.
    initial_sync_delay_s:
        Delay before the first sync tick, giving the player time to load.
    """

    def __init__(
        self,
        session: PlaybackSession,
        *,
        heartbeat: HeartbeatMonitor | None = None,
        recalibrate_interval_s: float = DEFAULT_RECALIBRATE_INTERVAL_S,
        countdown_interval_s: float = DEFAULT_COUNTDOWN_INTERVAL_S,
        initial_sync_delay_s: float = DEFAULT_INITIAL_SYNC_DELAY_S,
    ) -> None:
        if recalibrate_interval_s <= 0.0:
            raise ValueError("recalibrate_interval_s must be greater than zero")
        if countdown_interval_s <= 0.0:
            raise ValueError("countdown_interval_s must be greater than zero")
        self.session = session
        self.heartbeat = heartbeat or HeartbeatMonitor()
        self.recalibrate_interval_s = recalibrate_interval_s
        self.countdown_interval_s = countdown_interval_s
        self.initial_sync_delay_s = initial_sync_delay_s

        self._tasks: set[asyncio.Task] = set()
        self._calibrations: set[asyncio.Task] = set()
        self._resume_handles: set[asyncio.TimerHandle] = set()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks) + len(self._calibrations) + len(self._resume_handles)

    # Lifecycle --------------------------------------------------------------
    async def start(self) -> None:
        if self._running:
            return
        self._running = True

        # Calibration starts right away; tokens are fetched concurrently
        self.request_calibration("mount")
        ready = await asyncio.to_thread(self.session.prepare)
        if not ready:
            _log.warning("session_blocked", overlay=self.session.overlay.value)
            return

        self._spawn(self._sync_loop(), "sync")
        self._spawn(self._countdown_loop(), "countdown")
        self._spawn(self._recalibrate_loop(), "recalibrate")
        self._spawn(self._heartbeat_loop(), "heartbeat")

    async def stop(self) -> None:
        """Tear down every timer; nothing fires after this returns."""
        self._running = False
        for handle in self._resume_handles:
            handle.cancel()
        self._resume_handles.clear()

        pending = list(self._tasks) + list(self._calibrations)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()
        self._calibrations.clear()
        self.heartbeat.reset()

    async def run_for(self, seconds: float) -> None:
        """Run the session for ``seconds`` then tear it down."""
        await self.start()
        try:
            await asyncio.sleep(seconds)
        finally:
            await self.stop()

    async def __aenter__(self) -> "SessionRunner":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    def _spawn(self, coro: Awaitable[None], name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=f"simulive-{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # Calibration ------------------------------------------------------------
    def request_calibration(self, reason: str) -> asyncio.Task | None:
        """Start a calibration round trip without waiting for it.

        Overlapping requests are allowed; the last round trip to complete
        sets the offset.
        """
        if not self._running:
            return None
        _log.debug("calibration_requested", reason=reason)
        task = asyncio.create_task(self._calibrate(), name=f"simulive-calibrate-{reason}")
        self._calibrations.add(task)
        task.add_done_callback(self._calibrations.discard)
        return task

    async def _calibrate(self) -> ClockOffset:
        return await asyncio.to_thread(self.session.clock.calibrate)

    # Player events ----------------------------------------------------------
    def on_visibility_regained(self) -> None:
        self.request_calibration("visibility")
        self.session.sync()

    def on_seeking(self) -> None:
        self.session.on_seeking()

    def on_pause(self) -> None:
        delay = self.session.on_pause()
        if delay is None or not self._running:
            return
        loop = asyncio.get_running_loop()
        handle: asyncio.TimerHandle | None = None

        def _resume() -> None:
            self._resume_handles.discard(handle)
            self.session.resume_if_paused()

        handle = loop.call_later(delay, _resume)
        self._resume_handles.add(handle)

    # Timers -----------------------------------------------------------------
    async def _sync_loop(self) -> None:
        await asyncio.sleep(self.initial_sync_delay_s)
        while self._running:
            self.session.sync()
            await asyncio.sleep(self.session.schedule.sync_interval_s)

    async def _countdown_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.countdown_interval_s)
            self.session.refresh_display()

    async def _recalibrate_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.recalibrate_interval_s)
            self.request_calibration("interval")

    async def _heartbeat_loop(self) -> None:
        clock = self.session.clock
        self.heartbeat.beat(clock.local_time_ms())
        while self._running:
            await asyncio.sleep(self.heartbeat.interval_s)
            if self.heartbeat.beat(clock.local_time_ms()):
                _log.info("heartbeat_gap_detected")
                self.request_calibration("heartbeat")


def build_runner(
    schedule: StreamSchedule,
    clock: ClockSynchronizer,
    cursor: PlayerCursor,
    *,
    token_fetcher: TokenFetcher | None = None,
    is_active: bool = True,
    resume_settle_s: float = 0.1,
    recalibrate_interval_s: float = DEFAULT_RECALIBRATE_INTERVAL_S,
    heartbeat_interval_s: float = 5.0,
    heartbeat_threshold_s: float = 2.0,
) -> SessionRunner:
    """Wire a session and its runner from settings-level parameters."""
    session = PlaybackSession(
        schedule,
        clock,
        cursor,
        token_fetcher=token_fetcher,
        is_active=is_active,
        resume_settle_s=resume_settle_s,
    )
    return SessionRunner(
        session,
        heartbeat=HeartbeatMonitor(heartbeat_interval_s, heartbeat_threshold_s),
        recalibrate_interval_s=recalibrate_interval_s,
    )
