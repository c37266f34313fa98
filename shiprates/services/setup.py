"""
Startup wiring: builds the cache backend, external clients, resolution
strategy, resolver, config store and webhook listener from ``Settings`` and
attaches them to ``app.state``.
"""

import logging
from typing import Optional

from shiprates.core.config import Settings
from shiprates.core.enums import ResolverStrategyName
from shiprates.services.cache_invalidation import CacheInvalidationListener
from shiprates.services.config_store import RateConfigStore, config_from_settings
from shiprates.services.preproduct.client import PreProductClient
from shiprates.services.rate_service import RateService
from shiprates.services.shopify.client import ShopifyClient
from shiprates.services.status_cache import StatusCache, StatusCacheBackend, build_backend
from shiprates.services.status_resolver import ResolutionStrategy, StatusResolver, get_strategy

logger = logging.getLogger(__name__)


def build_strategy(settings: Settings) -> Optional[ResolutionStrategy]:
    """
    Build the configured strategy, or ``None`` when its credentials are missing.

    Raises:
        ValueError: If RESOLVER_STRATEGY names an unknown strategy
    """
    timeout = settings.RESOLVER_TIMEOUT_SECONDS
    try:
        shopify = ShopifyClient(
            settings.SHOPIFY_SHOP_DOMAIN,
            settings.SHOPIFY_ACCESS_TOKEN,
            api_version=settings.SHOPIFY_API_VERSION,
            timeout=timeout,
        )
    except ValueError as e:
        logger.error(f"Shopify client not configured, pre-order lookups disabled: {e}")
        return None

    preproduct = None
    if settings.RESOLVER_STRATEGY == ResolverStrategyName.TWO_HOP.value:
        try:
            preproduct = PreProductClient(
                settings.PREPRODUCT_API_TOKEN,
                base_url=settings.PREPRODUCT_BASE_URL,
                timeout=timeout,
            )
        except ValueError as e:
            logger.error(f"PreProduct client not configured, pre-order lookups disabled: {e}")
            return None

    strategy = get_strategy(
        settings.RESOLVER_STRATEGY,
        shopify,
        preproduct,
        namespace=settings.PREORDER_METAFIELD_NAMESPACE,
        key=settings.PREORDER_METAFIELD_KEY,
        batch_size=settings.RESOLVER_BATCH_SIZE,
        max_concurrency=settings.RESOLVER_MAX_CONCURRENCY,
    )
    logger.info(f"Pre-order resolution strategy: {strategy.name}")
    return strategy


def setup_services(state, settings: Settings, backend: Optional[StatusCacheBackend] = None) -> None:
    """Populate ``state`` (normally ``app.state``) with the service graph"""
    cache = StatusCache(
        backend or build_backend(settings.REDIS_URL, timeout=settings.CACHE_TIMEOUT_SECONDS),
        prefix=settings.STATUS_CACHE_PREFIX,
        default_ttl=settings.STATUS_CACHE_TTL_SECONDS,
        timeout=settings.CACHE_TIMEOUT_SECONDS,
    )
    resolver = StatusResolver(
        cache,
        build_strategy(settings),
        ttl_seconds=settings.STATUS_CACHE_TTL_SECONDS,
        timeout_seconds=settings.RESOLVER_TIMEOUT_SECONDS,
        cache_failed_lookups=settings.CACHE_FAILED_LOOKUPS,
    )
    config_store = RateConfigStore(config_from_settings(settings))

    state.status_cache = cache
    state.status_resolver = resolver
    state.config_store = config_store
    state.rate_service = RateService(resolver, config_store)
    state.invalidation_listener = CacheInvalidationListener(cache, settings.SHOPIFY_WEBHOOK_SECRET)
