# shiprates/core/config.py

import os
from functools import lru_cache
from typing import Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Shopify Admin API
    SHOPIFY_SHOP_DOMAIN: str = ""
    SHOPIFY_ACCESS_TOKEN: str = ""
    SHOPIFY_API_VERSION: str = "2024-07"
    SHOPIFY_WEBHOOK_SECRET: str = ""

    # PreProduct API
    PREPRODUCT_API_TOKEN: str = ""
    PREPRODUCT_BASE_URL: str = "https://api.preproduct.io/api/v2"

    # Status cache (empty REDIS_URL falls back to the in-process backend)
    REDIS_URL: str = ""
    STATUS_CACHE_PREFIX: str = "preproduct_variant_"
    STATUS_CACHE_TTL_SECONDS: int = 24 * 60 * 60
    CACHE_TIMEOUT_SECONDS: float = 1.0
    CACHE_FAILED_LOOKUPS: bool = True

    # Status resolution
    RESOLVER_STRATEGY: str = "two_hop"  # two_hop | batch
    RESOLVER_TIMEOUT_SECONDS: float = 5.0
    RESOLVER_MAX_CONCURRENCY: int = 0   # 0 = unbounded
    RESOLVER_BATCH_SIZE: int = 250
    PREORDER_METAFIELD_NAMESPACE: str = "preproduct"
    PREORDER_METAFIELD_KEY: str = "on_preorder"

    # Initial rate configuration (minor currency units)
    RATE_THRESHOLD: int = 5000
    RATE_FEE_UNDER_THRESHOLD: int = 500
    RATE_LABEL_RTS: str = "Ships Now (In-Stock)"
    RATE_LABEL_PO: str = "Ships Later (Pre-Order)"
    RATE_DESCRIPTION: str = "Free over $50"
    RATE_CURRENCY: str = "USD"
    RATE_KILL_SWITCH: bool = False

    # Basic Auth for the admin endpoints
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: Optional[str] = None

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file for every request"""
    return Settings()

def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()

def get_webhook_secret():
    """Get the shared secret used to sign Shopify webhooks"""
    return get_settings().SHOPIFY_WEBHOOK_SECRET
