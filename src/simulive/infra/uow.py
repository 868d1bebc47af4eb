"""
Transaction scope for stream record operations.

A unit of work commits when the block exits cleanly and rolls back when it
raises. The Typer commands enter it with ``with session() as db``; FastAPI
routes get the same scope through the :func:`get_db` dependency.
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator, Iterator

from sqlalchemy.orm import Session

from . import db as db_module


@contextlib.contextmanager
def session() -> Iterator[Session]:
    """Open a session bound to the current ``SessionLocal`` factory.

    The factory is looked up at call time so tests can swap it for an
    in-memory database.
    """
    db = db_module.SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    else:
        db.commit()
    finally:
        db.close()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped unit of work for FastAPI dependency injection."""
    with session() as db:
        yield db
