"""
SQLAlchemy engine and session factory for the stream metadata store.

SQLite is the default backend; any SQLAlchemy URL in ``DATABASE_URL`` works.
"""

from __future__ import annotations

from sqlalchemy import MetaData, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from simulive.infra.settings import settings

_IN_MEMORY_SQLITE = ("sqlite://", "sqlite:///", "sqlite:///:memory:")


class Base(DeclarativeBase):
    metadata = MetaData(
        naming_convention={
            "ix": "ix_%(column_0_label)s",
            "uq": "uq_%(table_name)s_%(column_0_name)s",
            "ck": "ck_%(table_name)s_%(constraint_name)s",
            "pk": "pk_%(table_name)s",
        }
    )


def _sqlite_options(url: str) -> dict[str, object]:
    options: dict[str, object] = {"connect_args": {"check_same_thread": False}}
    # every connection to an in-memory database would otherwise see its own empty copy
    if url in _IN_MEMORY_SQLITE or "mode=memory" in url:
        options["poolclass"] = StaticPool
    return options


def get_engine(db_url: str | None = None, *, echo: bool | None = None) -> Engine:
    """Build an engine for ``db_url``, falling back to ``settings.database_url``."""
    url = db_url or settings.database_url
    options: dict[str, object] = {
        "echo": settings.echo_sql if echo is None else echo,
        "pool_pre_ping": True,
    }
    if url.startswith("sqlite"):
        options.update(_sqlite_options(url))
    return create_engine(url, **options)


engine = get_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind: Engine | None = None) -> None:
    """Create the stream tables if they do not exist yet."""
    from simulive.domain import entities  # noqa: F401  registers the mapped tables

    Base.metadata.create_all(bind=bind or engine)
