from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.orm import Session

from .stream_resolve import resolve_stream

_log = structlog.get_logger(__name__)


def delete_stream(db: Session, *, identifier: str) -> dict[str, Any]:
    """Delete a stream by id or slug."""
    stream = resolve_stream(db, identifier)
    stream_id = stream.id
    db.delete(stream)
    db.commit()

    _log.info("stream_deleted", stream_id=stream_id)
    return {"success": True, "id": stream_id}
