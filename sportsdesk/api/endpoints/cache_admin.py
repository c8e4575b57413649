"""
Cache administration endpoints.

Status reporting, clearing and refreshing of the entity caches, plus the
destructive collection reset used by editors on staging sites.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ...services.cache.cache_manager import (
    CLEARABLE_COLLECTIONS,
    CacheManager,
    UnknownCacheFamilyError,
)
from ..dependencies import get_cache_manager

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin/cache", tags=["cache-admin"])


class ClearDatabaseRequest(BaseModel):
    target: str = Field(..., description=f"One of {', '.join(CLEARABLE_COLLECTIONS)}")


def _cache_unavailable() -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Cache is not available"},
    )


@router.get("/status")
async def cache_status(
    manager: CacheManager = Depends(get_cache_manager),
) -> Dict[str, Any]:
    return {
        "success": True,
        "data": {
            "cache": await manager.status(),
            "database": await manager.database_counts(),
        },
    }


@router.post("/clear/all")
async def clear_all_caches(manager: CacheManager = Depends(get_cache_manager)):
    if not manager.is_available():
        return _cache_unavailable()

    cleared = await manager.clear_all()
    return {
        "success": cleared,
        "message": "All caches cleared" if cleared else "Cache clear failed",
    }


@router.post("/clear/{family}")
async def clear_family_cache(
    family: str, manager: CacheManager = Depends(get_cache_manager)
):
    try:
        cache = manager.family(family)
    except UnknownCacheFamilyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if not manager.is_available():
        return _cache_unavailable()

    rebuilt = await manager.rebuild(cache.name)
    logger.info(f"Cache family {cache.name} cleared via admin endpoint")
    return {
        "success": True,
        "message": f"{cache.name} cache cleared",
        "data": {"rebuilt": rebuilt},
    }


@router.post("/refresh/{family}")
async def refresh_family_cache(
    family: str, manager: CacheManager = Depends(get_cache_manager)
):
    try:
        cache = manager.family(family)
    except UnknownCacheFamilyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if not manager.is_available():
        return _cache_unavailable()

    rebuilt = await manager.rebuild(cache.name)
    return {
        "success": True,
        "message": f"{cache.name} cache refreshed",
        "data": {
            "rebuilt": rebuilt,
            "documents": await cache.repository.count(),
            "keys": await cache.key_count(),
        },
    }


@router.post("/clear-db")
async def clear_database(
    payload: ClearDatabaseRequest,
    manager: CacheManager = Depends(get_cache_manager),
) -> Dict[str, Any]:
    try:
        deleted = await manager.clear_collection(payload.target)
    except UnknownCacheFamilyError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.warning(f"Database collection reset: {payload.target} ({deleted} documents)")
    return {
        "success": True,
        "message": f"Cleared {payload.target}",
        "data": {"deleted": deleted},
    }
