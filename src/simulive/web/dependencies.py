"""FastAPI dependencies resolving the collaborators stored on ``app.state``."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from ..adapters.mux import AssetProvider
from ..adapters.tokens import TokenIssuer
from ..infra.auth import ADMIN_COOKIE_NAME, AdminAuthenticator
from ..infra.cache import CacheStore
from ..infra.exceptions import AuthenticationError
from ..infra.uow import get_db  # noqa: F401  (re-exported for routers)


def get_cache(request: Request) -> CacheStore:
    return request.app.state.cache


def get_authenticator(request: Request) -> AdminAuthenticator:
    return request.app.state.authenticator


def get_asset_provider(request: Request) -> AssetProvider:
    provider = request.app.state.assets
    if provider is None:
        raise HTTPException(
            status_code=503,
            detail="Asset provider is not configured. Set MUX_TOKEN_ID and MUX_TOKEN_SECRET.",
        )
    return provider


def get_token_issuer(request: Request) -> TokenIssuer | None:
    return request.app.state.token_issuer


def require_admin(
    request: Request,
    auth: AdminAuthenticator = Depends(get_authenticator),
) -> None:
    """Gate for administrative endpoints."""
    if not auth.is_authorized(request.cookies.get(ADMIN_COOKIE_NAME)):
        raise AuthenticationError("Unauthorized")
