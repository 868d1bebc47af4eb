"""
PlaybackSession state machine against a stepped clock.

No timers here: every test advances a fake clock and calls the session hooks
the runner would call.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from simulive.domain.schedule import StreamSchedule
from simulive.infra.exceptions import TokenIssuanceError
from simulive.runtime.clock import ClockOffset, ClockSynchronizer
from simulive.runtime.player import SimulatedCursor
from simulive.runtime.session import TOKEN_ERROR_MESSAGE, PlaybackSession
from simulive.shared.types import Overlay, PlaybackPhase, PlaybackPolicy

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


class SteppedClock:
    """Shared time base for the wall clock and the simulated player."""

    def __init__(self, at: datetime):
        self.now_ms = at.timestamp() * 1000.0

    def wall_ms(self) -> float:
        return self.now_ms

    def monotonic(self) -> float:
        return self.now_ms / 1000.0

    def advance(self, seconds: float) -> None:
        self.now_ms += seconds * 1000.0


class LocalTimeSource:
    def __init__(self, clock: SteppedClock):
        self.clock = clock

    def fetch_server_time(self) -> float:
        return self.clock.now_ms


def make_session(
    at: datetime,
    *,
    duration: float = 3600.0,
    rate: float = 1.0,
    policy: PlaybackPolicy = PlaybackPolicy.PUBLIC,
    token_fetcher=None,
    is_active: bool = True,
    drift_tolerance: float = 3.0,
):
    clock = SteppedClock(at)
    schedule = StreamSchedule(
        scheduled_start=START,
        video_duration=duration,
        drift_tolerance=drift_tolerance,
        playback_id="pb-1",
        playback_policy=policy,
        title="Launch",
    )
    cursor = SimulatedCursor(clock.monotonic, rate=rate, media_duration=duration)
    sync = ClockSynchronizer(LocalTimeSource(clock), wall_clock_fn=clock.wall_ms)
    session = PlaybackSession(
        schedule,
        sync,
        cursor,
        token_fetcher=token_fetcher,
        is_active=is_active,
    )
    return session, clock, cursor


# ---------------------------------------------------------------------------
# Pre-roll
# ---------------------------------------------------------------------------


def test_overlay_is_loading_before_first_evaluation():
    session, _, _ = make_session(START)
    assert session.overlay is Overlay.LOADING


def test_pre_roll_holds_cursor_paused_at_zero():
    session, _, cursor = make_session(START - timedelta(seconds=60))

    result = session.sync()

    assert result.transition == (None, PlaybackPhase.PRE_ROLL)
    assert session.phase is PlaybackPhase.PRE_ROLL
    assert cursor.paused
    assert cursor.current_time == 0.0
    assert session.overlay is Overlay.COUNTDOWN
    assert session.countdown_text == "1:00"


def test_pre_roll_tick_without_boundary_changes_nothing():
    session, clock, cursor = make_session(START - timedelta(seconds=60))
    session.sync()
    seeks = cursor.seek_count

    clock.advance(5)
    result = session.sync()

    assert result.transition is None
    assert cursor.seek_count == seeks
    assert session.countdown_text == "0:55"


def test_countdown_ticker_updates_display_state():
    session, clock, _ = make_session(START - timedelta(seconds=10))
    session.sync()

    clock.advance(3)
    assert session.refresh_display() is None

    assert session.countdown_text == "0:07"


# ---------------------------------------------------------------------------
# Going live
# ---------------------------------------------------------------------------


def test_start_boundary_seeks_to_zero_and_plays():
    session, clock, cursor = make_session(START - timedelta(seconds=2))
    session.sync()

    clock.advance(2.5)
    result = session.refresh_display()

    assert result is not None
    assert result.transition == (PlaybackPhase.PRE_ROLL, PlaybackPhase.LIVE)
    assert not cursor.paused
    assert cursor.current_time == 0.0
    assert session.overlay is Overlay.NONE
    assert session.countdown_text is None


def test_start_boundary_skips_drift_check_until_next_tick():
    session, clock, cursor = make_session(START - timedelta(seconds=1))
    session.sync()

    # 4.5 s late to notice the boundary: cursor at 0, expected 4.5
    clock.advance(5.5)
    went_live = session.sync()
    assert went_live.corrected is False
    assert cursor.current_time == 0.0

    next_tick = session.sync()
    assert next_tick.corrected is True
    assert cursor.current_time == pytest.approx(4.5)


def test_joining_mid_broadcast_snaps_to_expected_position():
    session, _, cursor = make_session(START + timedelta(minutes=30))

    result = session.on_loaded_metadata()

    assert result.transition == (None, PlaybackPhase.LIVE)
    assert result.corrected is True
    assert result.drift == pytest.approx(-1800.0)
    assert cursor.current_time == pytest.approx(1800.0)
    assert not cursor.paused
    assert session.corrections == 1


# ---------------------------------------------------------------------------
# Drift correction
# ---------------------------------------------------------------------------


def test_in_sync_cursor_is_left_alone():
    session, clock, cursor = make_session(START + timedelta(seconds=10))
    session.sync()
    seeks = cursor.seek_count

    clock.advance(10)
    result = session.sync()

    assert result.corrected is False
    assert result.drift == pytest.approx(0.0)
    assert cursor.seek_count == seeks


def test_drift_beyond_tolerance_is_corrected():
    session, clock, cursor = make_session(START + timedelta(seconds=10), rate=1.5)
    session.sync()

    clock.advance(10)  # cursor gains 5 s on the broadcast
    result = session.sync()

    assert result.corrected is True
    assert result.drift == pytest.approx(5.0)
    assert cursor.current_time == pytest.approx(20.0)


def test_drift_within_tolerance_is_tolerated():
    session, clock, cursor = make_session(START + timedelta(seconds=10), rate=1.2)
    session.sync()

    clock.advance(10)  # 2 s ahead, tolerance 3 s
    result = session.sync()

    assert result.corrected is False
    assert cursor.current_time == pytest.approx(22.0)


def test_recalibration_moves_expected_position():
    session, _, cursor = make_session(START + timedelta(seconds=100))
    session.sync()

    session.clock.offset = ClockOffset(offset_ms=10_000, calibrated_at_ms=0.0, round_trip_ms=0.0)
    result = session.sync()

    assert result.corrected is True
    assert cursor.current_time == pytest.approx(110.0)


def test_seek_while_live_is_pulled_back_regardless_of_tolerance():
    session, _, cursor = make_session(START + timedelta(seconds=60))
    session.sync()

    cursor.seek(61.0)  # inside tolerance, still overridden
    result = session.on_seeking()

    assert result.corrected is True
    assert cursor.current_time == pytest.approx(60.0)


class ReportingCursor(SimulatedCursor):
    """Reports every seek back to the session, as a media element does."""

    session = None

    def seek(self, position: float) -> None:
        super().seek(position)
        if self.session is not None:
            self.session.on_seeking()


def test_session_seeks_do_not_retrigger_forced_resync():
    clock = SteppedClock(START + timedelta(minutes=30))
    schedule = StreamSchedule(scheduled_start=START, video_duration=3600.0)
    cursor = ReportingCursor(clock.monotonic, media_duration=3600.0)
    sync = ClockSynchronizer(LocalTimeSource(clock), wall_clock_fn=clock.wall_ms)
    session = PlaybackSession(schedule, sync, cursor)
    cursor.session = session
    session.sync()
    assert session.phase is PlaybackPhase.LIVE
    seeks = cursor.seek_count

    cursor.seek(100.0)

    assert cursor.seek_count == seeks + 2
    assert cursor.current_time == pytest.approx(1800.0)


def test_seek_to_the_expected_position_is_left_alone():
    session, _, cursor = make_session(START + timedelta(seconds=60))
    session.sync()
    session.on_seeking()
    seeks = cursor.seek_count

    result = session.on_seeking()

    assert result.corrected is False
    assert cursor.seek_count == seeks


def test_seek_during_pre_roll_is_not_forced():
    session, _, cursor = make_session(START - timedelta(seconds=30))
    session.sync()

    cursor.seek(12.0)
    result = session.on_seeking()

    assert result.corrected is False
    assert session.phase is PlaybackPhase.PRE_ROLL


# ---------------------------------------------------------------------------
# Ending
# ---------------------------------------------------------------------------


def test_end_boundary_pauses_at_duration_once():
    session, clock, cursor = make_session(START + timedelta(seconds=95), duration=100.0)
    session.sync()

    clock.advance(6)
    result = session.sync()

    assert result.transition == (PlaybackPhase.LIVE, PlaybackPhase.ENDED)
    assert cursor.paused
    assert cursor.current_time == pytest.approx(100.0)
    assert cursor.pause_count == 1
    assert session.overlay is Overlay.ENDED

    clock.advance(30)
    session.sync()
    session.refresh_display()
    assert cursor.pause_count == 1


def test_ended_is_terminal_even_if_clock_moves_back():
    session, clock, cursor = make_session(START + timedelta(seconds=200), duration=100.0)
    session.sync()
    assert session.phase is PlaybackPhase.ENDED

    session.clock.offset = ClockOffset(offset_ms=-150_000, calibrated_at_ms=0.0, round_trip_ms=0.0)
    result = session.sync()

    assert result.transition is None
    assert session.phase is PlaybackPhase.ENDED
    assert session.overlay is Overlay.ENDED
    assert cursor.paused


def test_pre_roll_can_jump_straight_to_ended():
    session, _, cursor = make_session(START - timedelta(seconds=30), duration=100.0)
    session.sync()

    session.clock.offset = ClockOffset(offset_ms=500_000, calibrated_at_ms=0.0, round_trip_ms=0.0)
    result = session.sync()

    assert result.transition == (PlaybackPhase.PRE_ROLL, PlaybackPhase.ENDED)
    assert cursor.current_time == pytest.approx(100.0)
    assert cursor.paused


def test_zero_length_video_ends_at_start():
    session, _, cursor = make_session(START, duration=0.0)

    result = session.sync()

    assert result.transition == (None, PlaybackPhase.ENDED)
    assert cursor.current_time == 0.0
    assert session.overlay is Overlay.ENDED


# ---------------------------------------------------------------------------
# Pauses
# ---------------------------------------------------------------------------


def test_pause_while_live_asks_for_resume():
    session, _, cursor = make_session(START + timedelta(seconds=10))
    session.sync()

    cursor.pause()
    delay = session.on_pause()

    assert delay == pytest.approx(0.1)
    assert session.resume_if_paused() is True
    assert not cursor.paused


def test_pause_during_pre_roll_is_legitimate():
    session, _, _ = make_session(START - timedelta(seconds=10))
    session.sync()

    assert session.on_pause() is None


def test_resume_skipped_if_player_already_playing():
    session, _, cursor = make_session(START + timedelta(seconds=10))
    session.sync()

    assert not cursor.paused
    assert session.resume_if_paused() is False


def test_resume_skipped_after_end():
    session, clock, cursor = make_session(START + timedelta(seconds=99), duration=100.0)
    session.sync()
    clock.advance(2)
    session.sync()

    assert session.on_pause() is None
    assert session.resume_if_paused() is False
    assert cursor.paused


# ---------------------------------------------------------------------------
# Signed playback and availability
# ---------------------------------------------------------------------------


def test_signed_playback_fetches_tokens_first():
    requested: list[str] = []

    def fetcher(playback_id):
        requested.append(playback_id)
        return {"playback": "jwt", "thumbnail": "jwt-t"}

    session, _, cursor = make_session(
        START + timedelta(seconds=5), policy=PlaybackPolicy.SIGNED, token_fetcher=fetcher
    )
    assert session.blocked
    assert session.sync() is None
    assert cursor.seek_count == 0

    assert session.prepare() is True
    assert requested == ["pb-1"]
    assert session.tokens["playback"] == "jwt"
    assert session.sync().transition == (None, PlaybackPhase.LIVE)


def test_token_failure_blocks_playback():
    def fetcher(playback_id):
        raise TokenIssuanceError("issuer down")

    session, clock, cursor = make_session(
        START + timedelta(seconds=5), policy=PlaybackPolicy.SIGNED, token_fetcher=fetcher
    )

    assert session.prepare() is False
    assert session.overlay is Overlay.TOKEN_ERROR
    assert session.error == TOKEN_ERROR_MESSAGE

    clock.advance(10)
    assert session.sync() is None
    assert session.refresh_display() is None
    assert session.on_pause() is None
    assert cursor.paused
    assert cursor.seek_count == 0


def test_signed_playback_without_token_source_is_blocked():
    session, _, _ = make_session(START, policy=PlaybackPolicy.SIGNED)

    assert session.prepare() is False
    assert session.overlay is Overlay.TOKEN_ERROR


def test_public_playback_needs_no_tokens():
    session, _, _ = make_session(START)

    assert session.prepare() is True
    assert session.tokens is None


def test_inactive_stream_is_unavailable():
    session, _, cursor = make_session(START + timedelta(seconds=5), is_active=False)

    assert session.prepare() is False
    assert session.overlay is Overlay.UNAVAILABLE
    assert session.sync() is None
    assert cursor.seek_count == 0
