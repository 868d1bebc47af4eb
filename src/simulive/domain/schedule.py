"""Read-only schedule snapshot consumed by the synchronization core.

A :class:`StreamSchedule` is taken once per viewing session from the stream
record. It is immutable: an administrator editing the record mid-broadcast
only affects sessions started afterwards.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from ..infra.exceptions import ValidationError
from ..shared.types import PlaybackPolicy

DEFAULT_SYNC_INTERVAL_MS = 5000
DEFAULT_DRIFT_TOLERANCE = 3.0

# datetime.fromisoformat on 3.10 only takes 3 or 6 fractional digits
_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are taken to be UTC. Raises :class:`ValidationError` when the
    value cannot be parsed.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        text = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValidationError(f"Invalid timestamp: {value!r}") from exc
    else:
        raise ValidationError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None or parsed.tzinfo.utcoffset(parsed) is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class StreamSchedule:
    """When a broadcast starts, how long it runs and how viewers stay in sync.

    Parameters
    ----------
    scheduled_start:
        Wall-clock instant at which video position 0 occurs.
    video_duration:
        Playable length in seconds. Must not be negative.
    sync_interval_ms:
        Period of the viewer re-sync loop in milliseconds. Must be positive.
    drift_tolerance:
        Divergence in seconds tolerated before a viewer is forced back to the
        expected position. Must not be negative.
    """

    scheduled_start: datetime
    video_duration: float
    sync_interval_ms: int = DEFAULT_SYNC_INTERVAL_MS
    drift_tolerance: float = DEFAULT_DRIFT_TOLERANCE
    playback_id: str | None = None
    playback_policy: PlaybackPolicy = PlaybackPolicy.PUBLIC
    title: str = ""
    scheduled_start_ms: float = field(init=False, repr=False)

    def __post_init__(self) -> None:
        start = parse_timestamp(self.scheduled_start)
        object.__setattr__(self, "scheduled_start", start)
        object.__setattr__(self, "scheduled_start_ms", start.timestamp() * 1000.0)
        object.__setattr__(self, "playback_policy", PlaybackPolicy(self.playback_policy))

        # NaN passes these checks; the state engine maps it to ENDED
        if self.video_duration < 0:
            raise ValidationError("video_duration must be non-negative")
        if self.sync_interval_ms <= 0:
            raise ValidationError("sync_interval_ms must be greater than zero")
        if self.drift_tolerance < 0:
            raise ValidationError("drift_tolerance must be non-negative")

    @property
    def sync_interval_s(self) -> float:
        return self.sync_interval_ms / 1000.0

    @property
    def requires_tokens(self) -> bool:
        return self.playback_policy is PlaybackPolicy.SIGNED

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "StreamSchedule":
        """Build a snapshot from a wire-format stream record."""
        if record.get("scheduledStart") is None:
            raise ValidationError("stream record has no scheduledStart")
        try:
            return cls(
                scheduled_start=parse_timestamp(record["scheduledStart"]),
                video_duration=float(record.get("duration") or 0.0),
                sync_interval_ms=int(
                    record["syncInterval"]
                    if record.get("syncInterval") is not None
                    else DEFAULT_SYNC_INTERVAL_MS
                ),
                drift_tolerance=float(
                    record["driftTolerance"]
                    if record.get("driftTolerance") is not None
                    else DEFAULT_DRIFT_TOLERANCE
                ),
                playback_id=record.get("playbackId"),
                playback_policy=PlaybackPolicy(record.get("playbackPolicy") or "public"),
                title=record.get("title") or "",
            )
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid stream record: {exc}") from exc
