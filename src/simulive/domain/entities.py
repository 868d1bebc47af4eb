"""
Domain entities for Simulive.

A single ``streams`` table holds every scheduled broadcast: which asset plays,
when position 0 occurs and the synchronization parameters viewers use.
"""

from __future__ import annotations

import uuid as uuid_module
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from ..infra.db import Base
from ..shared.types import PlaybackPolicy


def _new_id() -> str:
    return str(uuid_module.uuid4())


class Stream(Base):
    """A simulated-live broadcast of one pre-recorded asset."""

    __tablename__ = "streams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    asset_id: Mapped[str] = mapped_column(String(255), nullable=False)
    playback_id: Mapped[str] = mapped_column(String(255), nullable=False)
    playback_policy: Mapped[str] = mapped_column(
        String(16), nullable=False, default=PlaybackPolicy.PUBLIC.value
    )
    duration: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    scheduled_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    sync_interval: Mapped[int] = mapped_column(Integer, nullable=False, default=5000)
    drift_tolerance: Mapped[float] = mapped_column(Float, nullable=False, default=2.0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("duration >= 0", name="duration_non_negative"),
        CheckConstraint("sync_interval > 0", name="sync_interval_positive"),
        CheckConstraint("drift_tolerance >= 0", name="drift_tolerance_non_negative"),
    )

    def to_dict(self) -> dict[str, Any]:
        """Wire representation (camelCase, ISO-8601 timestamps)."""
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "assetId": self.asset_id,
            "playbackId": self.playback_id,
            "playbackPolicy": self.playback_policy,
            "duration": self.duration,
            "scheduledStart": _iso(self.scheduled_start),
            "syncInterval": self.sync_interval,
            "driftTolerance": self.drift_tolerance,
            "isActive": self.is_active,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Stream(id={self.id}, slug={self.slug}, scheduled_start={self.scheduled_start})>"


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat().replace("+00:00", "Z")
