from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.orm import Session

from ..domain.schedule import parse_timestamp
from ..infra.exceptions import ConflictError, ValidationError
from .stream_resolve import find_stream, resolve_stream, validate_slug

_log = structlog.get_logger(__name__)


def update_stream(
    db: Session,
    *,
    identifier: str,
    title: str | None = None,
    slug: str | None = None,
    scheduled_start: str | None = None,
    is_active: bool | None = None,
    sync_interval: int | None = None,
    drift_tolerance: float | None = None,
) -> dict[str, Any]:
    """Update the editable fields of a stream.

    Viewers already watching keep their schedule snapshot; the change is
    seen by sessions started afterwards.
    """
    stream = resolve_stream(db, identifier)

    if slug is not None and slug != stream.slug:
        validate_slug(slug)
        other = find_stream(db, slug)
        if other is not None and other.id != stream.id:
            raise ConflictError("A stream with this slug already exists")
        stream.slug = slug
    if title is not None:
        if not title:
            raise ValidationError("title must not be empty")
        stream.title = title
    if scheduled_start is not None:
        stream.scheduled_start = parse_timestamp(scheduled_start)
    if is_active is not None:
        stream.is_active = bool(is_active)
    if sync_interval is not None:
        if sync_interval <= 0:
            raise ValidationError("syncInterval must be greater than zero")
        stream.sync_interval = sync_interval
    if drift_tolerance is not None:
        if drift_tolerance < 0:
            raise ValidationError("driftTolerance must be non-negative")
        stream.drift_tolerance = drift_tolerance

    db.commit()
    db.refresh(stream)

    _log.info("stream_updated", stream_id=stream.id)
    return stream.to_dict()
