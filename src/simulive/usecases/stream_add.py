from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.orm import Session

from ..adapters.mux import AssetProvider
from ..domain.entities import Stream
from ..domain.schedule import parse_timestamp
from ..infra.exceptions import AssetLookupError, ConflictError, ValidationError
from ..infra.settings import settings
from .stream_resolve import find_stream, validate_slug

_log = structlog.get_logger(__name__)


def add_stream(
    db: Session,
    *,
    assets: AssetProvider,
    slug: str,
    title: str,
    asset_id: str,
    scheduled_start: str,
    sync_interval: int | None = None,
    drift_tolerance: float | None = None,
) -> dict[str, Any]:
    """Create a stream record for a ready asset and return its wire dict.

    Playback id, policy and duration come from the asset provider. New
    streams start inactive.
    """
    if not slug or not title or not asset_id or not scheduled_start:
        raise ValidationError("Missing required fields: slug, title, assetId, scheduledStart")
    validate_slug(slug)
    start = parse_timestamp(scheduled_start)

    if sync_interval is not None and sync_interval <= 0:
        raise ValidationError("syncInterval must be greater than zero")
    if drift_tolerance is not None and drift_tolerance < 0:
        raise ValidationError("driftTolerance must be non-negative")

    if find_stream(db, slug) is not None:
        raise ConflictError("A stream with this slug already exists")

    info = assets.get_asset_info(asset_id)
    if not info.playback_id or info.playback_policy is None:
        raise AssetLookupError("Asset does not have a playback ID")
    if not info.is_ready:
        raise AssetLookupError(f"Asset is not ready. Current status: {info.status}")

    stream = Stream(
        slug=slug,
        title=title,
        asset_id=asset_id,
        playback_id=info.playback_id,
        playback_policy=info.playback_policy.value,
        duration=float(info.duration or 0.0),
        scheduled_start=start,
        sync_interval=sync_interval or settings.default_sync_interval_ms,
        drift_tolerance=(
            drift_tolerance if drift_tolerance is not None else settings.default_drift_tolerance
        ),
        is_active=False,
    )
    db.add(stream)
    db.commit()
    db.refresh(stream)

    _log.info("stream_created", stream_id=stream.id, slug=slug, asset_id=asset_id)
    return stream.to_dict()
