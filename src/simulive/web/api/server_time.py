"""
Server time endpoint.

All viewers calibrate against this clock. Intermediaries may cache the
response for about a second.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

router = APIRouter(prefix="/api", tags=["time"])

CACHE_CONTROL = "public, s-maxage=1, stale-while-revalidate=1"


@router.get("/time")
async def get_server_time() -> JSONResponse:
    now_ms = int(time.time() * 1000)
    iso = datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc).isoformat(timespec="milliseconds")
    return JSONResponse(
        content={"serverTime": now_ms, "iso": iso.replace("+00:00", "Z")},
        headers={"Cache-Control": CACHE_CONTROL},
    )
