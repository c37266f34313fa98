class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class CacheBackendError(BaseServiceError):
    """Raised by a cache backend when the store cannot be reached."""
    pass

class StatusSourceError(BaseServiceError):
    """Base exception for external pre-order status sources."""
    pass

class ShopifyAPIError(StatusSourceError):
    """Raised when Shopify API calls fail."""
    pass

class ShopifyGraphQLError(ShopifyAPIError):
    """Raised when a Shopify GraphQL response carries errors."""
    def __init__(self, errors):
        self.errors = errors
        message = "GraphQL query failed with errors:\n"
        for error in errors:
            msg = error.get('message', 'Unknown error')
            path = error.get('path', [])
            message += f"- Message: {msg}, Path: {path}\n"
        super().__init__(message)

class PreProductAPIError(StatusSourceError):
    """Raised when PreProduct API calls fail."""
    pass

class WebhookVerificationError(BaseServiceError):
    """Raised when a webhook signature does not match the shared secret."""
    pass

class InvalidNotificationError(BaseServiceError):
    """Raised when a verified webhook payload cannot be parsed."""
    pass

class InvalidRateRequestError(BaseServiceError):
    """Raised when a rate request is missing its items list."""
    pass
