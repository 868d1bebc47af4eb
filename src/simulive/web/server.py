"""
Web server for Simulive.

Provides the FastAPI application factory and a uvicorn launcher.
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..adapters.mux import AssetProvider, MuxAssetProvider
from ..adapters.tokens import TokenIssuer
from ..infra.auth import AdminAuthenticator
from ..infra.cache import CacheStore, create_cache_store
from ..infra.exceptions import (
    AssetLookupError,
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ResourceError,
    SimuliveError,
    ValidationError,
)
from ..infra.logging import get_logger
from ..infra.settings import settings
from .api import admin, health, server_time, streams, tokens, watch
from .api import assets as assets_api

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS: tuple[tuple[type[SimuliveError], int], ...] = (
    (ValidationError, 400),
    (AssetLookupError, 400),
    (AuthenticationError, 401),
    (NotFoundError, 404),
    (ConflictError, 409),
    (ResourceError, 503),
)


def status_for(exc: SimuliveError) -> int:
    for exc_type, status in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status
    return 500


async def simulive_error_handler(request: Request, exc: SimuliveError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    return JSONResponse(status_code=status, content={"error": str(exc)})


def _default_asset_provider() -> AssetProvider | None:
    if not settings.mux_configured:
        logger.warning("Mux credentials not set; stream creation and asset listing are disabled")
        return None
    return MuxAssetProvider(settings.mux_token_id, settings.mux_token_secret, settings.mux_api_url)


def create_app(
    *,
    assets: AssetProvider | None = None,
    token_issuer: TokenIssuer | None = None,
    cache: CacheStore | None = None,
    admin_password: str | None = None,
) -> FastAPI:
    """Build the API application.

    Collaborators default to what the settings describe; tests and embedding
    applications pass their own.
    """
    app = FastAPI(title="Simulive API")

    app.state.cache = cache if cache is not None else create_cache_store()
    app.state.assets = assets if assets is not None else _default_asset_provider()
    app.state.token_issuer = token_issuer
    app.state.authenticator = AdminAuthenticator(
        admin_password if admin_password is not None else settings.admin_password,
        app.state.cache,
    )

    app.add_exception_handler(SimuliveError, simulive_error_handler)

    app.include_router(server_time.router)
    app.include_router(health.router)
    app.include_router(streams.router)
    app.include_router(watch.router)
    app.include_router(tokens.router)
    app.include_router(admin.router)
    app.include_router(assets_api.router)
    return app


def run_server(host: str = "0.0.0.0", port: int = 8000, *, reload: bool = False) -> None:
    get_logger(__name__).info("api_server_starting", host=host, port=port, reload=reload)
    if reload:
        uvicorn.run("simulive.web.server:create_app", host=host, port=port, reload=True, factory=True)
    else:
        uvicorn.run(create_app(), host=host, port=port)
