"""
Health check endpoint for container orchestration and load balancers.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from ...infra.cache import InMemoryCacheStore
from ..dependencies import get_cache, get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health(
    request: Request,
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
) -> JSONResponse:
    checks: dict[str, dict[str, str]] = {}

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = {"status": "pass"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = {"status": "fail", "error": str(e)}

    if isinstance(cache, InMemoryCacheStore):
        checks["cache"] = {"status": "skip", "error": "Redis not configured (optional)"}
    else:
        try:
            cache.ping()
            checks["cache"] = {"status": "pass"}
        except Exception as e:
            logger.error(f"Cache health check failed: {e}")
            checks["cache"] = {"status": "fail", "error": str(e)}

    if request.app.state.assets is not None:
        checks["asset_provider"] = {"status": "pass"}
    else:
        checks["asset_provider"] = {
            "status": "fail",
            "error": "MUX_TOKEN_ID or MUX_TOKEN_SECRET not set",
        }

    healthy = all(c["status"] in ("pass", "skip") for c in checks.values())
    return JSONResponse(
        content={
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": checks,
        },
        status_code=200 if healthy else 503,
        headers={"Cache-Control": "no-store"},
    )
