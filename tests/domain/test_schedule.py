from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from simulive.domain.schedule import StreamSchedule, parse_timestamp
from simulive.infra.exceptions import ValidationError
from simulive.shared.types import PlaybackPolicy


@pytest.mark.parametrize(
    "value",
    [
        "2024-01-01T00:00:00Z",
        "2024-01-01T00:00:00.000Z",
        "2024-01-01T00:00:00.0Z",
        "2024-01-01T00:00:00.0000000Z",
        "2024-01-01T00:00:00+00:00",
        "2024-01-01T01:00:00+01:00",
        "2024-01-01T00:00:00",
    ],
)
def test_parse_timestamp_normalizes_to_utc(value):
    parsed = parse_timestamp(value)

    assert parsed == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parsed.utcoffset() == timedelta(0)


def test_parse_timestamp_accepts_any_fraction_length():
    assert parse_timestamp("2024-01-01T00:30:00.5Z") == datetime(2024, 1, 1, 0, 30, 0, 500000, tzinfo=timezone.utc)
    assert parse_timestamp("2024-01-01T00:30:00.1234Z").microsecond == 123400


@pytest.mark.parametrize("value", ["", "tomorrow", "2024-13-01T00:00:00Z", 1704067200])
def test_parse_timestamp_rejects_garbage(value):
    with pytest.raises(ValidationError):
        parse_timestamp(value)


def test_schedule_exposes_start_in_epoch_ms():
    schedule = StreamSchedule(scheduled_start="2024-01-01T00:00:00Z", video_duration=10)

    assert schedule.scheduled_start_ms == 1704067200000.0
    assert schedule.sync_interval_s == 5.0
    assert schedule.drift_tolerance == 3.0
    assert schedule.playback_policy is PlaybackPolicy.PUBLIC
    assert not schedule.requires_tokens


@pytest.mark.parametrize(
    "kwargs",
    [
        {"video_duration": -1.0},
        {"video_duration": 10.0, "sync_interval_ms": 0},
        {"video_duration": 10.0, "drift_tolerance": -0.5},
    ],
)
def test_schedule_rejects_invalid_parameters(kwargs):
    with pytest.raises(ValidationError):
        StreamSchedule(scheduled_start="2024-01-01T00:00:00Z", **kwargs)


def test_schedule_is_immutable():
    schedule = StreamSchedule(scheduled_start="2024-01-01T00:00:00Z", video_duration=10)
    with pytest.raises(AttributeError):
        schedule.video_duration = 20  # type: ignore[misc]


def test_from_record_reads_wire_fields():
    schedule = StreamSchedule.from_record(
        {
            "title": "Premiere",
            "playbackId": "pb-9",
            "playbackPolicy": "signed",
            "scheduledStart": "2024-06-01T18:00:00Z",
            "duration": 5400.5,
            "syncInterval": 2500,
            "driftTolerance": 0,
            "isActive": True,
        }
    )

    assert schedule.title == "Premiere"
    assert schedule.playback_id == "pb-9"
    assert schedule.requires_tokens
    assert schedule.video_duration == 5400.5
    assert schedule.sync_interval_ms == 2500
    assert schedule.drift_tolerance == 0.0
    assert schedule.scheduled_start == datetime(2024, 6, 1, 18, tzinfo=timezone.utc)


def test_from_record_applies_defaults():
    schedule = StreamSchedule.from_record({"scheduledStart": "2024-06-01T18:00:00Z", "duration": 60})

    assert schedule.sync_interval_ms == 5000
    assert schedule.drift_tolerance == 3.0
    assert schedule.playback_policy is PlaybackPolicy.PUBLIC


@pytest.mark.parametrize(
    "record",
    [
        {},
        {"scheduledStart": "not a date", "duration": 10},
        {"scheduledStart": "2024-06-01T18:00:00Z", "duration": "long"},
        {"scheduledStart": "2024-06-01T18:00:00Z", "duration": 10, "playbackPolicy": "private"},
        {"scheduledStart": "2024-06-01T18:00:00Z", "duration": 10, "syncInterval": 0},
    ],
)
def test_from_record_rejects_unusable_records(record):
    with pytest.raises(ValidationError):
        StreamSchedule.from_record(record)
