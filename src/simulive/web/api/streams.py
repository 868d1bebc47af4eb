"""
REST API endpoints for stream records.

Reads are public; create, update and delete require an admin session.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ...adapters.mux import AssetProvider
from ...infra.cache import CacheStore
from ...usecases import stream_add, stream_delete, stream_list, stream_update
from ..dependencies import get_asset_provider, get_cache, get_db, require_admin

router = APIRouter(prefix="/api/streams", tags=["streams"])

STREAMS_CACHE_KEY = "streams:all"
STREAMS_CACHE_TTL = 30  # seconds


# ============================================================================
# Pydantic Models for Request
# ============================================================================


class StreamCreate(BaseModel):
    """Request model for creating a stream."""

    model_config = ConfigDict(populate_by_name=True)

    slug: str | None = Field(None, description="URL slug (lowercase letters, digits, hyphens)")
    title: str | None = Field(None, description="Display title")
    asset_id: str | None = Field(None, alias="assetId", description="Asset reference at the provider")
    scheduled_start: str | None = Field(
        None, alias="scheduledStart", description="ISO-8601 instant of position 0"
    )
    sync_interval: int | None = Field(None, alias="syncInterval", description="Re-sync period (ms)")
    drift_tolerance: float | None = Field(
        None, alias="driftTolerance", description="Tolerated drift (s)"
    )


class StreamUpdate(BaseModel):
    """Request model for updating a stream."""

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    slug: str | None = None
    scheduled_start: str | None = Field(None, alias="scheduledStart")
    is_active: bool | None = Field(None, alias="isActive")
    sync_interval: int | None = Field(None, alias="syncInterval")
    drift_tolerance: float | None = Field(None, alias="driftTolerance")


# ============================================================================
# Endpoints
# ============================================================================


@router.get("")
async def list_streams(
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
) -> JSONResponse:
    """List all streams, served from cache when possible."""
    cached = cache.get(STREAMS_CACHE_KEY)
    if cached is not None:
        return JSONResponse(content=cached, headers={"X-Cache": "HIT"})

    streams = stream_list.list_streams(db)
    cache.set(STREAMS_CACHE_KEY, streams, STREAMS_CACHE_TTL)
    return JSONResponse(content=streams, headers={"X-Cache": "MISS"})


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def create_stream(
    payload: StreamCreate,
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
    assets: AssetProvider = Depends(get_asset_provider),
) -> dict[str, Any]:
    """Create a stream for an asset; duration and playback id come from the provider."""
    result = stream_add.add_stream(
        db,
        assets=assets,
        slug=payload.slug or "",
        title=payload.title or "",
        asset_id=payload.asset_id or "",
        scheduled_start=payload.scheduled_start or "",
        sync_interval=payload.sync_interval,
        drift_tolerance=payload.drift_tolerance,
    )
    cache.delete(STREAMS_CACHE_KEY)
    return result


@router.get("/{stream_id}")
async def get_stream(stream_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    return stream_list.get_stream(db, stream_id)


@router.patch("/{stream_id}", dependencies=[Depends(require_admin)])
async def update_stream(
    stream_id: str,
    payload: StreamUpdate,
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
) -> dict[str, Any]:
    result = stream_update.update_stream(
        db,
        identifier=stream_id,
        title=payload.title,
        slug=payload.slug,
        scheduled_start=payload.scheduled_start,
        is_active=payload.is_active,
        sync_interval=payload.sync_interval,
        drift_tolerance=payload.drift_tolerance,
    )
    cache.delete(STREAMS_CACHE_KEY)
    return result


@router.delete("/{stream_id}", dependencies=[Depends(require_admin)])
async def delete_stream(
    stream_id: str,
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
) -> dict[str, Any]:
    result = stream_delete.delete_stream(db, identifier=stream_id)
    cache.delete(STREAMS_CACHE_KEY)
    return result
