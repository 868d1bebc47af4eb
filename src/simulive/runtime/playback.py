"""Playback state engine.

Maps a synced wall-clock time and a :class:`StreamSchedule` to the position
every viewer should be at right now. The mapping is a pure function: no
accumulator, no memory of earlier calls. A state can therefore be recomputed
from scratch after any clock recalibration.

Elapsed time is measured from ``scheduled_start``; the broadcast is live on
the half-open interval ``[0, video_duration)``. ``elapsed == video_duration``
is already ENDED.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from ..domain.schedule import StreamSchedule
from ..shared.types import PlaybackPhase

DEFAULT_DRIFT_TOLERANCE = 3.0


@dataclass(frozen=True)
class PlaybackState:
    """Derived broadcast state for one evaluation instant."""

    is_live: bool
    has_ended: bool
    current_position: float
    seconds_until_start: float
    seconds_remaining: float

    @property
    def phase(self) -> PlaybackPhase:
        if self.has_ended:
            return PlaybackPhase.ENDED
        if self.is_live:
            return PlaybackPhase.LIVE
        return PlaybackPhase.PRE_ROLL

    @property
    def is_pre_roll(self) -> bool:
        return self.phase is PlaybackPhase.PRE_ROLL

    def to_dict(self) -> dict[str, object]:
        return {
            "isLive": self.is_live,
            "hasEnded": self.has_ended,
            "currentPosition": self.current_position,
            "secondsUntilStart": self.seconds_until_start,
            "secondsRemaining": self.seconds_remaining,
            "phase": self.phase.value,
        }


def elapsed_seconds(synced_time_ms: float, schedule: StreamSchedule) -> float:
    """Seconds since ``scheduled_start`` (negative during pre-roll)."""
    return (synced_time_ms - schedule.scheduled_start_ms) / 1000.0


def compute_playback_state(synced_time_ms: float, schedule: StreamSchedule) -> PlaybackState:
    """Return the broadcast state at ``synced_time_ms`` (epoch milliseconds).

    Never raises. A NaN elapsed time or duration yields the terminal ENDED
    state with finite numbers.
    """
    duration = schedule.video_duration
    elapsed = elapsed_seconds(synced_time_ms, schedule)

    if math.isnan(elapsed) or math.isnan(duration):
        end = 0.0 if math.isnan(duration) else duration
        return PlaybackState(
            is_live=False,
            has_ended=True,
            current_position=end,
            seconds_until_start=0.0,
            seconds_remaining=0.0,
        )

    return PlaybackState(
        is_live=0 <= elapsed < duration,
        has_ended=elapsed >= duration,
        current_position=max(0.0, min(elapsed, duration)),
        seconds_until_start=max(0.0, -elapsed),
        seconds_remaining=max(0.0, duration - elapsed),
    )


def has_drifted(
    actual_position: float,
    expected_position: float,
    tolerance: float = DEFAULT_DRIFT_TOLERANCE,
) -> bool:
    """True when the cursor diverges from the expected position by more than ``tolerance``."""
    return abs(actual_position - expected_position) > tolerance


def format_time(seconds: float) -> str:
    """Format seconds as ``M:SS`` or ``H:MM:SS`` for countdown display."""
    if math.isnan(seconds) or seconds < 0:
        seconds = 0.0
    total = int(seconds)
    hrs, rest = divmod(total, 3600)
    mins, secs = divmod(rest, 60)
    if hrs > 0:
        return f"{hrs}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"
