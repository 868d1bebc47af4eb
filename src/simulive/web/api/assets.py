"""
Asset listing for the admin asset picker.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from ...adapters.mux import MAX_PAGE_SIZE, AssetProvider
from ..dependencies import get_asset_provider, require_admin

router = APIRouter(prefix="/api/assets", tags=["assets"], dependencies=[Depends(require_admin)])


@router.get("")
async def list_assets(
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
    cursor: str | None = Query(None, description="Cursor of the next page"),
    assets: AssetProvider = Depends(get_asset_provider),
) -> dict[str, Any]:
    return assets.list_assets(limit=limit, cursor=cursor)
