"""
Signed playback token relay.

Tokens are issued by an external :class:`TokenIssuer` and cached for six
hours (they stay valid far longer).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...adapters.tokens import TokenIssuer
from ...infra.cache import CacheStore
from ...infra.exceptions import TokenIssuanceError
from ..dependencies import get_cache, get_token_issuer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tokens", tags=["tokens"])

TOKEN_CACHE_TTL = 6 * 60 * 60


@router.get("/{playback_id}")
async def get_playback_tokens(
    playback_id: str,
    issuer: TokenIssuer | None = Depends(get_token_issuer),
    cache: CacheStore = Depends(get_cache),
) -> JSONResponse:
    if issuer is None:
        return JSONResponse(status_code=503, content={"error": "Signing keys not configured"})

    cache_key = f"tokens:{playback_id}"
    cached = cache.get(cache_key)
    if cached is not None:
        logger.debug(f"Token cache HIT for {playback_id}")
        return JSONResponse(content=cached)

    try:
        tokens = dict(issuer.issue(playback_id))
    except TokenIssuanceError as e:
        logger.error(f"Failed to generate tokens for {playback_id}: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to generate playback tokens"})

    cache.set(cache_key, tokens, TOKEN_CACHE_TTL)
    return JSONResponse(content=tokens)
