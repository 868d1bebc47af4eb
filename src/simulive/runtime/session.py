"""Per-viewer simulated-live session.

:class:`PlaybackSession` is the single long-lived state machine that drives
both overlay visibility and cursor correction for one viewer::

    PRE_ROLL -> LIVE    elapsed crosses 0: seek to 0 and play
    LIVE     -> ENDED   elapsed crosses the duration: seek to the end and pause
    PRE_ROLL -> ENDED   schedule edited into the past; handled like LIVE -> ENDED
    ENDED is terminal.

The session keeps driving the cursor while an overlay (countdown, ended) is
shown, so boundary instants are never missed. It never sleeps and never does
I/O on its own schedule; :class:`~simulive.runtime.runner.SessionRunner`
owns the timers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping

import structlog

from ..domain.schedule import StreamSchedule
from ..infra.exceptions import TokenIssuanceError
from ..shared.types import Overlay, PlaybackPhase
from .clock import ClockSynchronizer
from .playback import PlaybackState, compute_playback_state, format_time, has_drifted
from .player import PlayerCursor

TokenFetcher = Callable[[str], Mapping[str, str]]

DEFAULT_RESUME_SETTLE_S = 0.1
TOKEN_ERROR_MESSAGE = "Unable to load signed video"
# A seeking event landing this close to the last session-issued seek is its echo
SEEK_ECHO_TOLERANCE_S = 0.5

_log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one evaluation of the session."""

    state: PlaybackState
    transition: tuple[PlaybackPhase | None, PlaybackPhase] | None = None
    corrected: bool = False
    drift: float | None = None


class PlaybackSession:
    """Keeps one viewer's cursor on the shared broadcast timeline.

    Parameters
    ----------
    schedule:
        Immutable schedule snapshot for this session.
    clock:
        This session's own :class:`ClockSynchronizer`.
    cursor:
        The player being driven.
    token_fetcher:
        Called with the playback id before playback of a signed asset.
    is_active:
        False when the stream record is not servable.
    resume_settle_s:
        Delay before an unexpected pause while live is undone.
    """

    def __init__(
        self,
        schedule: StreamSchedule,
        clock: ClockSynchronizer,
        cursor: PlayerCursor,
        *,
        token_fetcher: TokenFetcher | None = None,
        is_active: bool = True,
        resume_settle_s: float = DEFAULT_RESUME_SETTLE_S,
    ) -> None:
        self.schedule = schedule
        self.clock = clock
        self.cursor = cursor
        self.token_fetcher = token_fetcher
        self.is_active = is_active
        self.resume_settle_s = resume_settle_s

        self.phase: PlaybackPhase | None = None
        self.state: PlaybackState | None = None
        self.tokens: Mapping[str, str] | None = None
        self.error: str | None = None
        self.corrections = 0
        self._seek_target: float | None = None
        self._ready = not schedule.requires_tokens

    # Setup ------------------------------------------------------------------
    def prepare(self) -> bool:
        """Acquire signed-access tokens when the asset needs them.

        Returns ``False`` when playback is blocked. A failed issuance leaves
        the session in the TOKEN_ERROR state; it is not retried here.
        """
        if not self.is_active:
            return False
        if not self.schedule.requires_tokens:
            self._ready = True
            return True

        if self.token_fetcher is None or not self.schedule.playback_id:
            self._block_on_tokens("no token source for signed playback")
            return False
        try:
            self.tokens = dict(self.token_fetcher(self.schedule.playback_id))
        except TokenIssuanceError as exc:
            self._block_on_tokens(str(exc))
            return False

        self._ready = True
        self.error = None
        return True

    def _block_on_tokens(self, reason: str) -> None:
        self._ready = False
        self.error = TOKEN_ERROR_MESSAGE
        _log.error("token_issuance_failed", playback_id=self.schedule.playback_id, reason=reason)

    # Display ----------------------------------------------------------------
    @property
    def blocked(self) -> bool:
        return not self.is_active or not self._ready

    @property
    def overlay(self) -> Overlay:
        if not self.is_active:
            return Overlay.UNAVAILABLE
        if self.error is not None:
            return Overlay.TOKEN_ERROR
        if self.state is None or not self._ready:
            return Overlay.LOADING
        if self.state.has_ended:
            return Overlay.ENDED
        if self.state.is_live:
            return Overlay.NONE
        return Overlay.COUNTDOWN

    @property
    def countdown_text(self) -> str | None:
        if self.overlay is not Overlay.COUNTDOWN or self.state is None:
            return None
        return format_time(self.state.seconds_until_start)

    def evaluate(self) -> PlaybackState:
        """Pure state at the current synced time; does not touch the cursor."""
        return compute_playback_state(self.clock.synced_time_ms(), self.schedule)

    def refresh_display(self) -> SyncResult | None:
        """Countdown ticker hook.

        Updates the displayed state; hands over to :meth:`sync` when a phase
        boundary has been crossed since the last evaluation.
        """
        if self.blocked or self.phase is PlaybackPhase.ENDED:
            return None
        state = self.evaluate()
        if state.phase is not self.phase:
            return self.sync()
        self.state = state
        return None

    # Sync tick --------------------------------------------------------------
    def sync(self, *, force_resync: bool = False) -> SyncResult | None:
        """Recompute state and apply corrections to the cursor.

        Called on every ``sync_interval`` tick, on metadata load and on user
        seeks. ``force_resync`` snaps a live cursor to the expected position
        regardless of tolerance.
        """
        if self.blocked:
            return None

        previous = self.phase
        if previous is PlaybackPhase.ENDED:
            # Terminal: a later recalibration must not reopen the broadcast
            return SyncResult(state=self.state)

        state = self.evaluate()
        self.state = state

        if state.has_ended:
            self._enter(previous, PlaybackPhase.ENDED)
            self._seek(self.schedule.video_duration)
            self.cursor.pause()
            return SyncResult(state=state, transition=(previous, PlaybackPhase.ENDED))

        if state.is_pre_roll:
            if previous is not PlaybackPhase.PRE_ROLL:
                self._enter(previous, PlaybackPhase.PRE_ROLL)
                self._seek(0.0)
                self.cursor.pause()
                return SyncResult(state=state, transition=(previous, PlaybackPhase.PRE_ROLL))
            return SyncResult(state=state)

        if previous is PlaybackPhase.PRE_ROLL:
            # The broadcast starts at position 0, drift correction begins next tick
            self._enter(previous, PlaybackPhase.LIVE)
            self._seek(0.0)
            self._ensure_playing()
            return SyncResult(state=state, transition=(previous, PlaybackPhase.LIVE))

        transition = None
        if previous is None:
            self._enter(previous, PlaybackPhase.LIVE)
            transition = (previous, PlaybackPhase.LIVE)

        expected = state.current_position
        actual = self.cursor.current_time
        drift = actual - expected
        corrected = False
        if (force_resync and actual != expected) or has_drifted(
            actual, expected, self.schedule.drift_tolerance
        ):
            _log.info(
                "drift_corrected",
                actual=round(actual, 3),
                expected=round(expected, 3),
                forced=force_resync,
            )
            self._seek(expected)
            self.corrections += 1
            corrected = True
        self._ensure_playing()
        return SyncResult(state=state, transition=transition, corrected=corrected, drift=drift)

    def _enter(self, previous: PlaybackPhase | None, phase: PlaybackPhase) -> None:
        self.phase = phase
        _log.info(
            "playback_phase_changed",
            title=self.schedule.title,
            previous=previous.value if previous else None,
            phase=phase.value,
        )

    def _seek(self, position: float) -> None:
        self._seek_target = position
        self.cursor.seek(position)

    def _ensure_playing(self) -> None:
        if self.cursor.paused and not self.cursor.play():
            _log.debug("playback_start_refused")

    # Player events ----------------------------------------------------------
    def on_loaded_metadata(self) -> SyncResult | None:
        return self.sync()

    def on_seeking(self) -> SyncResult | None:
        """A viewer tried to scrub; pull a live cursor back to the broadcast.

        Players also report the session's own seeks. Those only get the
        tolerance-gated check.
        """
        target, self._seek_target = self._seek_target, None
        if target is not None and abs(self.cursor.current_time - target) <= SEEK_ECHO_TOLERANCE_S:
            return self.sync()
        if self.phase is PlaybackPhase.LIVE:
            return self.sync(force_resync=True)
        return self.sync()

    def on_pause(self) -> float | None:
        """A pause happened while possibly live.

        Returns the settle delay after which :meth:`resume_if_paused` should
        run, or ``None`` when the pause is legitimate (pre-roll, ended).
        """
        if self.blocked or self.phase is PlaybackPhase.ENDED:
            return None
        if not self.evaluate().is_live:
            return None
        return self.resume_settle_s

    def resume_if_paused(self) -> bool:
        """Resume playback if the player is still paused and the broadcast still live."""
        if self.blocked or self.phase is PlaybackPhase.ENDED:
            return False
        if not self.cursor.paused or not self.evaluate().is_live:
            return False
        _log.info("playback_resumed_after_pause")
        return self.cursor.play()
