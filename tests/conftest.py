"""
Global test configuration for Simulive.

Every test runs against a fresh in-memory SQLite database; API tests get an
application wired with fake collaborators.
"""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from simulive.adapters.mux import AssetInfo
from simulive.infra import db as db_module
from simulive.infra.cache import InMemoryCacheStore
from simulive.infra.exceptions import AssetLookupError, TokenIssuanceError
from simulive.shared.types import PlaybackPolicy
from simulive.web.server import create_app


@pytest.fixture(autouse=True)
def _force_test_db(monkeypatch):
    """Point every session factory at a private in-memory database."""
    engine = db_module.get_engine("sqlite://", echo=False)
    db_module.init_db(bind=engine)

    TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    monkeypatch.setattr(db_module, "SessionLocal", TestSessionLocal)
    monkeypatch.setattr(db_module, "engine", engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(_force_test_db):
    session = db_module.SessionLocal()
    try:
        yield session
    finally:
        session.close()


class FakeAssetProvider:
    """Asset provider serving a fixed catalogue."""

    def __init__(self, assets: dict[str, AssetInfo] | None = None):
        self.assets = assets if assets is not None else {
            "asset-ready": AssetInfo(
                id="asset-ready",
                playback_id="pb-public",
                playback_policy=PlaybackPolicy.PUBLIC,
                duration=3600.0,
                status="ready",
            ),
            "asset-signed": AssetInfo(
                id="asset-signed",
                playback_id="pb-signed",
                playback_policy=PlaybackPolicy.SIGNED,
                duration=120.0,
                status="ready",
            ),
            "asset-preparing": AssetInfo(
                id="asset-preparing",
                playback_id="pb-preparing",
                playback_policy=PlaybackPolicy.PUBLIC,
                duration=None,
                status="preparing",
            ),
            "asset-no-playback": AssetInfo(
                id="asset-no-playback",
                playback_id=None,
                playback_policy=None,
                duration=60.0,
                status="ready",
            ),
        }
        self.lookups: list[str] = []

    def get_asset_info(self, asset_id: str) -> AssetInfo:
        self.lookups.append(asset_id)
        try:
            return self.assets[asset_id]
        except KeyError:
            raise AssetLookupError(f"Failed to fetch asset {asset_id}: 404") from None

    def list_assets(self, limit: int = 20, cursor: str | None = None) -> dict[str, Any]:
        items = [a.to_dict() for a in self.assets.values()]
        return {"assets": items[:limit], "nextCursor": None}


class FakeTokenIssuer:
    """Token issuer that counts calls and can be told to fail."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[str] = []

    def issue(self, playback_id: str) -> dict[str, str]:
        self.calls.append(playback_id)
        if self.fail:
            raise TokenIssuanceError("signing key rejected")
        return {
            "playback": f"jwt-playback-{playback_id}",
            "thumbnail": f"jwt-thumbnail-{playback_id}",
            "storyboard": f"jwt-storyboard-{playback_id}",
        }


@pytest.fixture
def assets():
    return FakeAssetProvider()


@pytest.fixture
def token_issuer():
    return FakeTokenIssuer()


@pytest.fixture
def cache():
    return InMemoryCacheStore()


@pytest.fixture
def app(assets, token_issuer, cache):
    return create_app(assets=assets, token_issuer=token_issuer, cache=cache, admin_password="")


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
