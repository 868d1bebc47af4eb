from __future__ import annotations

import time
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from ..domain.schedule import StreamSchedule, parse_timestamp
from ..runtime.playback import compute_playback_state, format_time
from .stream_resolve import resolve_stream


def stream_state(
    db: Session,
    *,
    identifier: str,
    at: str | datetime | None = None,
) -> dict[str, Any]:
    """The stream record plus its playback state at ``at`` (server time by default)."""
    record = resolve_stream(db, identifier).to_dict()
    schedule = StreamSchedule.from_record(record)

    if at is None:
        at_ms = time.time() * 1000.0
    else:
        at_ms = parse_timestamp(at).timestamp() * 1000.0

    state = compute_playback_state(at_ms, schedule)
    return {
        "stream": record,
        "serverTime": int(at_ms),
        "state": state.to_dict(),
        "countdown": format_time(state.seconds_until_start) if state.is_pre_roll else None,
    }
