"""Clock synchronization between a viewer and the authoritative server clock.

Viewers never make a network call per position calculation. Instead a
:class:`ClockOffset` is estimated from one round trip to the clock endpoint
and added to local time to obtain *synced time*. The estimate assumes
symmetric one-way latency and corrects for half the round trip.

Calibration fails open: when the endpoint is unreachable the previous offset
(zero before the first success) stays in effect and playback carries on with
degraded accuracy.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol, runtime_checkable

import requests
import structlog

from ..infra.exceptions import ClockUnreachableError

WallClockMsFn = Callable[[], float]

_log = structlog.get_logger(__name__)


def wall_clock_ms() -> float:
    """Local wall-clock time in epoch milliseconds."""
    return time.time() * 1000.0


@dataclass(frozen=True)
class ClockOffset:
    """Amount (ms) to add to local time to approximate server time.

    ``calibrated_at_ms`` and ``round_trip_ms`` describe the round trip that
    produced the value and are ``None`` for the uncalibrated zero offset.
    """

    offset_ms: int = 0
    calibrated_at_ms: float | None = None
    round_trip_ms: float | None = None

    @property
    def is_calibrated(self) -> bool:
        return self.calibrated_at_ms is not None

    def synced_time_ms(self, local_ms: float) -> float:
        return local_ms + self.offset_ms


def estimate_offset(t0_ms: float, server_time_ms: float, t1_ms: float) -> int:
    """Half-round-trip offset estimate: ``server - (t0 + (t1 - t0) / 2)``."""
    midpoint = t0_ms + (t1_ms - t0_ms) / 2.0
    return int(round(server_time_ms - midpoint))


@runtime_checkable
class ServerTimeSource(Protocol):
    """Anything that can report the authoritative server time."""

    def fetch_server_time(self) -> float:
        """Return server time in epoch milliseconds or raise ClockUnreachableError."""


class HttpServerTimeSource:
    """Reads ``{"serverTime": <ms>}`` from the clock endpoint over HTTP."""

    def __init__(
        self,
        url: str,
        *,
        timeout_s: float = 5.0,
        http: requests.Session | None = None,
    ) -> None:
        self.url = url
        self.timeout_s = timeout_s
        self._http = http or requests.Session()

    def fetch_server_time(self) -> float:
        try:
            response = self._http.get(self.url, timeout=self.timeout_s)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise ClockUnreachableError(f"clock endpoint {self.url} failed: {exc}") from exc

        server_time = payload.get("serverTime") if isinstance(payload, dict) else None
        if isinstance(server_time, bool) or not isinstance(server_time, (int, float)):
            raise ClockUnreachableError(f"malformed clock payload: {payload!r}")
        try:
            value = float(server_time)
        except (OverflowError, ValueError, TypeError) as exc:
            raise ClockUnreachableError(f"malformed clock payload: {payload!r}") from exc
        if not math.isfinite(value):
            raise ClockUnreachableError(f"malformed clock payload: {payload!r}")
        return value


@dataclass
class ClockSynchronizer:
    """Per-session holder of the current :class:`ClockOffset`.

    Parameters
    ----------
    source:
        Where the authoritative time comes from.
    wall_clock_fn:
        Injectable local clock returning epoch milliseconds.
    """

    source: ServerTimeSource
    wall_clock_fn: WallClockMsFn = field(default=wall_clock_ms)
    offset: ClockOffset = field(default_factory=ClockOffset)
    failures: int = field(default=0, init=False)

    def calibrate(self) -> ClockOffset:
        """Measure a fresh offset; never raises.

        Overlapping calls are allowed. Whichever round trip completes last
        sets the offset.
        """
        t0 = self.wall_clock_fn()
        try:
            server_time = self.source.fetch_server_time()
        except ClockUnreachableError as exc:
            self.failures += 1
            _log.warning(
                "clock_calibration_failed",
                error=str(exc),
                failures=self.failures,
                kept_offset_ms=self.offset.offset_ms,
            )
            return self.offset
        t1 = self.wall_clock_fn()

        self.offset = ClockOffset(
            offset_ms=estimate_offset(t0, server_time, t1),
            calibrated_at_ms=t1,
            round_trip_ms=t1 - t0,
        )
        _log.debug(
            "clock_calibrated",
            offset_ms=self.offset.offset_ms,
            round_trip_ms=round(self.offset.round_trip_ms or 0.0, 1),
        )
        return self.offset

    def reset(self) -> None:
        self.offset = ClockOffset()

    def local_time_ms(self) -> float:
        return self.wall_clock_fn()

    def synced_time_ms(self, local_ms: float | None = None) -> float:
        """Local time corrected by the current offset."""
        if local_ms is None:
            local_ms = self.wall_clock_fn()
        return self.offset.synced_time_ms(local_ms)


class HeartbeatMonitor:
    """Detects suspended timers, system sleep and throttled tabs.

    :meth:`beat` is called on a nominal ``interval_s`` cadence. When the real
    gap since the previous beat diverges from the nominal interval by more
    than ``threshold_s`` the clock offset is considered suspect.
    """

    def __init__(self, interval_s: float = 5.0, threshold_s: float = 2.0) -> None:
        if interval_s <= 0.0:
            raise ValueError("interval_s must be greater than zero")
        if threshold_s <= 0.0:
            raise ValueError("threshold_s must be greater than zero")
        self.interval_s = interval_s
        self.threshold_s = threshold_s
        self._last_beat_ms: float | None = None

    def beat(self, now_ms: float) -> bool:
        """Record a beat at ``now_ms``; True when the gap was off by more than the threshold."""
        last = self._last_beat_ms
        self._last_beat_ms = now_ms
        if last is None:
            return False
        gap_s = (now_ms - last) / 1000.0
        return abs(gap_s - self.interval_s) > self.threshold_s

    def reset(self) -> None:
        self._last_beat_ms = None
