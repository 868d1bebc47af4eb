"""Playback cursor contract and a headless implementation.

The synchronization session drives a cursor it does not own. Real players
(an embedded media element, an mpv instance, ...) adapt to
:class:`PlayerCursor`; :class:`SimulatedCursor` is a clock-driven stand-in used
by the ``simulive watch`` command and by tests.
"""

from __future__ import annotations

import time
from typing import Callable, Protocol, runtime_checkable

MonotonicFn = Callable[[], float]


@runtime_checkable
class PlayerCursor(Protocol):
    """Minimal control surface the session needs from a player."""

    @property
    def current_time(self) -> float:
        """Playback position in seconds."""

    @property
    def paused(self) -> bool:
        """True while playback is paused."""

    def seek(self, position: float) -> None:
        """Move the playback position to ``position`` seconds."""

    def play(self) -> bool:
        """Start playback; False when the player refused (e.g. autoplay blocked)."""

    def pause(self) -> None:
        """Pause playback."""


class SimulatedCursor:
    """Player that advances with a monotonic clock while playing.

    Parameters
    ----------
    monotonic_fn:
        Clock in seconds, defaults to :func:`time.monotonic`.
    rate:
        Playback speed relative to the clock. Values other than ``1.0``
        simulate a drifting player.
    media_duration:
        Optional hard end of the media; the position never exceeds it.
    """

    def __init__(
        self,
        monotonic_fn: MonotonicFn = time.monotonic,
        *,
        rate: float = 1.0,
        media_duration: float | None = None,
    ) -> None:
        if rate <= 0.0:
            raise ValueError("rate must be greater than zero")
        self._monotonic_fn = monotonic_fn
        self.rate = rate
        self.media_duration = media_duration
        self._base_position = 0.0
        self._base_time = monotonic_fn()
        self._paused = True
        self.seek_count = 0
        self.play_count = 0
        self.pause_count = 0

    @property
    def current_time(self) -> float:
        position = self._base_position
        if not self._paused:
            position += (self._monotonic_fn() - self._base_time) * self.rate
        if self.media_duration is not None:
            position = min(position, self.media_duration)
        return max(0.0, position)

    @property
    def paused(self) -> bool:
        return self._paused

    def seek(self, position: float) -> None:
        self._base_position = max(0.0, position)
        self._base_time = self._monotonic_fn()
        self.seek_count += 1

    def play(self) -> bool:
        if self._paused:
            self._base_position = self.current_time
            self._base_time = self._monotonic_fn()
            self._paused = False
            self.play_count += 1
        return True

    def pause(self) -> None:
        if not self._paused:
            self._base_position = self.current_time
            self._base_time = self._monotonic_fn()
            self._paused = True
            self.pause_count += 1

    def __repr__(self) -> str:
        state = "paused" if self._paused else "playing"
        return f"<SimulatedCursor({state}, t={self.current_time:.3f}, rate={self.rate})>"
