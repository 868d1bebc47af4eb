from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ..domain.entities import Stream
from .stream_resolve import resolve_stream


def list_streams(db: Session, *, active_only: bool = False) -> list[dict[str, Any]]:
    """All streams, latest scheduled start first."""
    query = db.query(Stream)
    if active_only:
        query = query.filter(Stream.is_active.is_(True))
    return [s.to_dict() for s in query.order_by(Stream.scheduled_start.desc()).all()]


def get_stream(db: Session, identifier: str) -> dict[str, Any]:
    """A single stream by id or slug."""
    return resolve_stream(db, identifier).to_dict()
