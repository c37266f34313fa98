from fastapi import Request

from shiprates.services.cache_invalidation import CacheInvalidationListener
from shiprates.services.config_store import RateConfigStore
from shiprates.services.rate_service import RateService
from shiprates.services.status_cache import StatusCache


def get_status_cache(request: Request) -> StatusCache:
    """Dependency for the shared status cache built at startup."""
    return request.app.state.status_cache

def get_config_store(request: Request) -> RateConfigStore:
    return request.app.state.config_store

def get_rate_service(request: Request) -> RateService:
    return request.app.state.rate_service

def get_invalidation_listener(request: Request) -> CacheInvalidationListener:
    return request.app.state.invalidation_listener
