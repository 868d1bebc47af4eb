from __future__ import annotations

import re

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..domain.entities import Stream
from ..infra.exceptions import NotFoundError, ValidationError

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")


def validate_slug(slug: str) -> str:
    if not slug or not SLUG_PATTERN.match(slug):
        raise ValidationError("Slug must contain only lowercase letters, numbers, and hyphens")
    return slug


def find_stream(db: Session, identifier: str) -> Stream | None:
    """Look a stream up by id first, then by slug."""
    stream = db.get(Stream, identifier)
    if stream is None:
        stream = db.query(Stream).filter(func.lower(Stream.slug) == identifier.lower()).first()
    return stream


def resolve_stream(db: Session, identifier: str) -> Stream:
    stream = find_stream(db, identifier)
    if stream is None:
        raise NotFoundError(f"Stream '{identifier}' not found")
    return stream
