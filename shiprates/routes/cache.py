import logging

from fastapi import APIRouter, Depends, HTTPException

from shiprates.core.config import Settings, get_settings
from shiprates.core.exceptions import CacheBackendError
from shiprates.dependencies import get_status_cache
from shiprates.services.status_cache import StatusCache

router = APIRouter(prefix="/cache", tags=["cache"])

logger = logging.getLogger(__name__)


@router.get("/stats")
async def cache_stats(
    cache: StatusCache = Depends(get_status_cache),
    settings: Settings = Depends(get_settings),
):
    """Cached variant count and backend connectivity"""
    stats = await cache.stats()
    if not stats["connected"]:
        raise HTTPException(status_code=503, detail="Cache backend not connected")
    stats["preproduct_api"] = "configured" if settings.PREPRODUCT_API_TOKEN else "missing"
    return stats


@router.post("/clear")
async def clear_cache(cache: StatusCache = Depends(get_status_cache)):
    """Drop every cached pre-order status"""
    if not await cache.is_connected():
        raise HTTPException(status_code=503, detail="Cache backend not connected")
    try:
        cleared = await cache.clear()
    except CacheBackendError as e:
        logger.error(f"Cache clear failed: {e}")
        raise HTTPException(status_code=503, detail="Cache backend not connected")
    logger.info(f"Cleared {cleared} cached variant statuses")
    return {"cleared": cleared}
