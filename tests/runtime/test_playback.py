"""
Playback state engine: pure mapping from synced time to broadcast state.

Covers the three phases, the half-open live interval, degenerate schedules
and the drift predicate.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

import pytest

from simulive.domain.schedule import StreamSchedule
from simulive.runtime.playback import (
    PlaybackState,
    compute_playback_state,
    elapsed_seconds,
    format_time,
    has_drifted,
)
from simulive.shared.types import PlaybackPhase

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
START_MS = START.timestamp() * 1000.0


def _ms(value: str) -> float:
    return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp() * 1000.0


@pytest.fixture
def hour_long() -> StreamSchedule:
    return StreamSchedule(scheduled_start=START, video_duration=3600.0)


# ---------------------------------------------------------------------------
# End-to-end scenarios
# ---------------------------------------------------------------------------


def test_half_way_through_an_hour_long_broadcast(hour_long):
    state = compute_playback_state(_ms("2024-01-01T00:30:00Z"), hour_long)

    assert state.is_live is True
    assert state.has_ended is False
    assert state.current_position == 1800.0
    assert state.seconds_remaining == 1800.0
    assert state.seconds_until_start == 0.0
    assert state.phase is PlaybackPhase.LIVE


def test_one_minute_before_start(hour_long):
    state = compute_playback_state(_ms("2023-12-31T23:59:00Z"), hour_long)

    assert state.is_live is False
    assert state.has_ended is False
    assert state.seconds_until_start == 60.0
    assert state.current_position == 0.0
    assert state.seconds_remaining == 3660.0
    assert state.phase is PlaybackPhase.PRE_ROLL


def test_one_second_after_the_end(hour_long):
    state = compute_playback_state(_ms("2024-01-01T01:00:01Z"), hour_long)

    assert state.has_ended is True
    assert state.is_live is False
    assert state.current_position == 3600.0
    assert state.seconds_remaining == 0.0
    assert state.phase is PlaybackPhase.ENDED


# ---------------------------------------------------------------------------
# Phase properties over a range of elapsed times
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("elapsed", [-86400.0, -60.0, -1.5, -0.001])
def test_pre_roll_holds_position_zero(hour_long, elapsed):
    state = compute_playback_state(START_MS + elapsed * 1000.0, hour_long)

    assert state.is_live is False
    assert state.has_ended is False
    assert state.current_position == 0.0
    assert state.seconds_until_start == pytest.approx(-elapsed)


@pytest.mark.parametrize("elapsed", [0.0, 0.25, 1.0, 1799.5, 3599.999])
def test_live_position_tracks_elapsed(hour_long, elapsed):
    state = compute_playback_state(START_MS + elapsed * 1000.0, hour_long)

    assert state.is_live is True
    assert state.has_ended is False
    assert state.current_position == pytest.approx(elapsed)
    assert state.seconds_remaining == pytest.approx(3600.0 - elapsed)


@pytest.mark.parametrize("elapsed", [3600.0, 3600.001, 7200.0, 1e9])
def test_ended_clamps_to_duration(hour_long, elapsed):
    state = compute_playback_state(START_MS + elapsed * 1000.0, hour_long)

    assert state.has_ended is True
    assert state.is_live is False
    assert state.current_position == 3600.0
    assert state.seconds_remaining == 0.0


def test_upper_boundary_is_already_ended():
    schedule = StreamSchedule(scheduled_start=START, video_duration=100.0)

    at_end = compute_playback_state(START_MS + 100_000.0, schedule)
    just_before = compute_playback_state(START_MS + 99_999.0, schedule)

    assert at_end.has_ended is True
    assert at_end.is_live is False
    assert just_before.is_live is True


def test_exact_start_is_live(hour_long):
    state = compute_playback_state(START_MS, hour_long)

    assert state.is_live is True
    assert state.current_position == 0.0
    assert state.seconds_until_start == 0.0


def test_flags_are_mutually_exclusive(hour_long):
    for offset_s in (-10, 0, 10, 3599, 3600, 4000):
        state = compute_playback_state(START_MS + offset_s * 1000.0, hour_long)
        assert not (state.is_live and state.has_ended)
        assert 0.0 <= state.current_position <= 3600.0


def test_same_inputs_give_identical_state(hour_long):
    now = _ms("2024-01-01T00:12:34.567Z")

    first = compute_playback_state(now, hour_long)
    second = compute_playback_state(now, hour_long)

    assert first == second
    assert first.to_dict() == second.to_dict()


# ---------------------------------------------------------------------------
# Degenerate schedules
# ---------------------------------------------------------------------------


def test_zero_duration_is_ended_from_start():
    schedule = StreamSchedule(scheduled_start=START, video_duration=0.0)

    before = compute_playback_state(START_MS - 1000.0, schedule)
    at_start = compute_playback_state(START_MS, schedule)

    assert before.is_pre_roll
    assert at_start.has_ended is True
    assert at_start.is_live is False
    assert at_start.current_position == 0.0


def test_nan_time_is_treated_as_ended(hour_long):
    state = compute_playback_state(float("nan"), hour_long)

    assert state.has_ended is True
    assert state.is_live is False
    assert state.current_position == 3600.0
    assert not math.isnan(state.seconds_remaining)


def test_nan_duration_is_treated_as_ended():
    schedule = StreamSchedule(scheduled_start=START, video_duration=float("nan"))

    state = compute_playback_state(START_MS + 5000.0, schedule)

    assert state.has_ended is True
    assert state.current_position == 0.0
    assert state.seconds_until_start == 0.0


def test_elapsed_is_negative_before_start(hour_long):
    assert elapsed_seconds(START_MS - 2500.0, hour_long) == -2.5


def test_state_wire_format(hour_long):
    data = compute_playback_state(START_MS + 1500.0, hour_long).to_dict()

    assert data == {
        "isLive": True,
        "hasEnded": False,
        "currentPosition": 1.5,
        "secondsUntilStart": 0.0,
        "secondsRemaining": 3598.5,
        "phase": "live",
    }


def test_state_is_frozen(hour_long):
    state = compute_playback_state(START_MS, hour_long)
    with pytest.raises(AttributeError):
        state.current_position = 10.0  # type: ignore[misc]
    assert isinstance(state, PlaybackState)


# ---------------------------------------------------------------------------
# Drift predicate
# ---------------------------------------------------------------------------


def test_small_drift_is_tolerated():
    assert has_drifted(10.0, 10.5, tolerance=3.0) is False


def test_large_drift_is_detected():
    assert has_drifted(10.0, 14.0, tolerance=3.0) is True
    assert has_drifted(14.0, 10.0, tolerance=3.0) is True


def test_drift_at_tolerance_is_not_drift():
    assert has_drifted(10.0, 13.0, tolerance=3.0) is False


@pytest.mark.parametrize("position", [0.0, 1.25, 3600.0])
def test_no_drift_against_itself_even_with_zero_tolerance(position):
    assert has_drifted(position, position, 0.0) is False


def test_default_tolerance_is_three_seconds():
    assert has_drifted(0.0, 3.0) is False
    assert has_drifted(0.0, 3.01) is True


# ---------------------------------------------------------------------------
# Countdown formatting
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "0:00"),
        (5.9, "0:05"),
        (60, "1:00"),
        (65, "1:05"),
        (3599, "59:59"),
        (3600, "1:00:00"),
        (3723, "1:02:03"),
        (3725, "1:02:05"),
        (-4, "0:00"),
        (float("nan"), "0:00"),
    ],
)
def test_format_time(seconds, expected):
    assert format_time(seconds) == expected
