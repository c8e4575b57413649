"""
Health check endpoints for the Sportsdesk API.

The site stays up without its cache, so a degraded cache only downgrades
the overall status; an unreachable store makes it unhealthy.
"""

import logging
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from ...constants import APP_NAME, APP_VERSION, get_current_timestamp
from ...core.config import Settings
from ...core.database import DatabaseManager
from ...repositories.base import StoreQueryError
from ...services.cache.cache_manager import CacheManager
from ..dependencies import get_app_settings, get_cache_manager, get_database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])

# Track process start time for uptime calculation
PROCESS_START_TIME = time.time()


async def _check_repositories(manager: CacheManager) -> Dict[str, Any]:
    """Store check through the repositories when no SQL engine is owned here."""
    start_time = time.time()
    try:
        await manager.repositories.news.count()
    except StoreQueryError as e:
        logger.error(f"Database health check failed: {e.message}")
        return {"status": "unhealthy", "message": e.message}
    return {
        "status": "healthy",
        "response_time_ms": round((time.time() - start_time) * 1000, 2),
    }


@router.get("")
async def health_check(
    manager: CacheManager = Depends(get_cache_manager),
    database: Optional[DatabaseManager] = Depends(get_database),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    """
    Health of the API and its dependencies.

    Returns:
        Overall status plus one entry per dependency
    """
    checks: Dict[str, Any] = {}

    if database is not None:
        checks["database"] = await database.health_check()
    else:
        checks["database"] = await _check_repositories(manager)

    checks["cache"] = await manager.store.health_check()

    if checks["database"]["status"] != "healthy":
        overall = "unhealthy"
    elif checks["cache"]["status"] == "healthy":
        overall = "healthy"
    else:
        overall = "degraded"

    return {
        "status": overall,
        "service": APP_NAME,
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": get_current_timestamp().isoformat(),
        "uptime_seconds": round(time.time() - PROCESS_START_TIME, 2),
        "checks": checks,
    }


@router.get("/live")
async def liveness_check() -> Dict[str, Any]:
    """Liveness check; succeeds while the process is running."""
    return {"status": "alive", "timestamp": get_current_timestamp().isoformat()}
