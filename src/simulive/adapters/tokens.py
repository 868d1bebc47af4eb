"""
Signed-access playback tokens.

Issuing tokens (key management and signing) happens outside this project:
the server relays tokens from an injected :class:`TokenIssuer`, and viewers
fetch them through :class:`HttpTokenClient` before starting a signed stream.
"""

from __future__ import annotations

from typing import Mapping, Protocol

import requests

from ..infra.exceptions import TokenIssuanceError


class TokenIssuer(Protocol):
    """Issues the tokens needed to play a signed playback id."""

    def issue(self, playback_id: str) -> Mapping[str, str]:
        """Return e.g. ``{"playback": ..., "thumbnail": ..., "storyboard": ...}``.

        Raise :class:`TokenIssuanceError` on failure.
        """


class HttpTokenClient:
    """Viewer-side fetcher for ``GET /api/tokens/{playbackId}``."""

    def __init__(self, base_url: str, *, timeout_s: float = 10.0, http: requests.Session | None = None):
        self.base_url = base_url.strip().rstrip("/")
        self.timeout_s = timeout_s
        self._http = http or requests.Session()

    def __call__(self, playback_id: str) -> Mapping[str, str]:
        return self.fetch(playback_id)

    def fetch(self, playback_id: str) -> Mapping[str, str]:
        url = f"{self.base_url}/api/tokens/{playback_id}"
        try:
            response = self._http.get(url, timeout=self.timeout_s)
            response.raise_for_status()
            tokens = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise TokenIssuanceError(f"token request for {playback_id} failed: {exc}") from exc

        if not isinstance(tokens, dict) or not tokens.get("playback"):
            raise TokenIssuanceError(f"token response for {playback_id} has no playback token")
        return tokens
