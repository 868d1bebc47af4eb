"""
Viewer entry point: the servable stream record and its current state.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...usecases import stream_state
from ..dependencies import get_db

router = APIRouter(prefix="/api/watch", tags=["watch"])


@router.get("/{slug}")
async def watch_stream(
    slug: str,
    at: str | None = Query(None, description="Evaluate at this ISO-8601 instant instead of now"),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Return the schedule a viewer session needs, plus the server-side state."""
    result = stream_state.stream_state(db, identifier=slug, at=at)
    if not result["stream"]["isActive"]:
        return JSONResponse(
            status_code=403,
            content={"error": "This stream is not currently active."},
        )
    return JSONResponse(content=result, headers={"Cache-Control": "no-store"})
