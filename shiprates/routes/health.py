from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from shiprates.core.config import Settings, get_settings
from shiprates.dependencies import get_status_cache
from shiprates.services.status_cache import StatusCache

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    cache: StatusCache = Depends(get_status_cache),
    settings: Settings = Depends(get_settings),
):
    """Basic health check"""
    connected = await cache.is_connected()
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "cache": "connected" if connected else "disconnected",
        "cache_backend": cache.backend.name,
        "resolver_strategy": settings.RESOLVER_STRATEGY,
        "preproduct_api": "configured" if settings.PREPRODUCT_API_TOKEN else "missing",
    }
