"""
Core module exports.
"""
from .enums import (
    Bucket,
    ServiceCode,
    ResolverStrategyName,
)

from .exceptions import (
    BaseServiceError,
    CacheBackendError,
    StatusSourceError,
    ShopifyAPIError,
    ShopifyGraphQLError,
    PreProductAPIError,
    WebhookVerificationError,
    InvalidNotificationError,
    InvalidRateRequestError,
)
