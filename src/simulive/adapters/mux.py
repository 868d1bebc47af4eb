"""
Mux Video asset provider.

Resolves an opaque asset id to its playback handle, playback policy and
duration through the Mux REST API. Only the read operations the stream
admin needs are implemented.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..infra.exceptions import AssetLookupError, ResourceError
from ..shared.types import PlaybackPolicy

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 20
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class AssetInfo:
    """What the metadata store needs to know about a video asset."""

    id: str
    playback_id: str | None
    playback_policy: PlaybackPolicy | None
    duration: float | None
    status: str
    aspect_ratio: str | None = None
    resolution: str | None = None
    created_at: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.status == "ready"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "playbackId": self.playback_id,
            "playbackPolicy": self.playback_policy.value if self.playback_policy else None,
            "duration": self.duration,
            "status": self.status,
            "aspectRatio": self.aspect_ratio,
            "resolution": self.resolution,
            "createdAt": self.created_at,
        }


class AssetProvider(Protocol):
    """Lookup contract consumed by the stream use cases and the admin API."""

    def get_asset_info(self, asset_id: str) -> AssetInfo:
        ...

    def list_assets(self, limit: int = 20, cursor: str | None = None) -> dict[str, Any]:
        ...


def _pick_playback(playback_ids: list[dict[str, Any]] | None) -> tuple[str | None, PlaybackPolicy | None]:
    """Prefer a public playback id, fall back to a signed one."""
    entries = playback_ids or []
    for wanted in (PlaybackPolicy.PUBLIC, PlaybackPolicy.SIGNED):
        for entry in entries:
            if entry.get("policy") == wanted.value and entry.get("id"):
                return entry["id"], wanted
    return None, None


def parse_asset(data: dict[str, Any]) -> AssetInfo:
    playback_id, policy = _pick_playback(data.get("playback_ids"))
    return AssetInfo(
        id=data["id"],
        playback_id=playback_id,
        playback_policy=policy,
        duration=data.get("duration"),
        status=data.get("status", "unknown"),
        aspect_ratio=data.get("aspect_ratio"),
        resolution=data.get("resolution_tier"),
        created_at=data.get("created_at"),
    )


class MuxAssetProvider:
    """Mux HTTP client for asset lookups."""

    def __init__(self, token_id: str, token_secret: str, base_url: str = "https://api.mux.com"):
        if not token_id or not token_secret:
            raise ResourceError(
                "MUX_TOKEN_ID and MUX_TOKEN_SECRET must be set in environment variables"
            )
        self.base_url = base_url.strip().rstrip("/")
        self.session = self._create_session(token_id.strip(), token_secret.strip())

    def _create_session(self, token_id: str, token_secret: str) -> requests.Session:
        """Create a requests session with retry logic and basic auth."""
        session = requests.Session()

        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.auth = (token_id, token_secret)
        session.headers.update({"Accept": "application/json"})
        return session

    def get_asset_info(self, asset_id: str) -> AssetInfo:
        url = f"{self.base_url}/video/v1/assets/{asset_id}"
        try:
            response = self.session.get(url, timeout=DEFAULT_TIMEOUT_S)
            response.raise_for_status()
            data = response.json()["data"]
        except (requests.RequestException, KeyError, ValueError) as e:
            raise AssetLookupError(f"Failed to fetch asset {asset_id}: {e}") from e
        return parse_asset(data)

    def list_assets(self, limit: int = 20, cursor: str | None = None) -> dict[str, Any]:
        """One page of assets, newest first, plus the cursor of the next page."""
        limit = max(1, min(int(limit), MAX_PAGE_SIZE))
        params: dict[str, Any] = {"limit": limit}
        if cursor:
            params["cursor"] = cursor
        try:
            response = self.session.get(
                f"{self.base_url}/video/v1/assets", params=params, timeout=DEFAULT_TIMEOUT_S
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise AssetLookupError(f"Failed to list assets: {e}") from e

        return {
            "assets": [parse_asset(item).to_dict() for item in payload.get("data", [])],
            "nextCursor": payload.get("next_cursor"),
        }

    def ping(self) -> bool:
        self.list_assets(limit=1)
        return True
