"""
Cache Invalidation Listener

Handles Shopify ``products/update`` webhooks: after checking the HMAC
signature, every variant of the changed product is purged from the status
cache so the next checkout re-resolves it.
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import ValidationError

from shiprates.core.exceptions import InvalidNotificationError, WebhookVerificationError
from shiprates.schemas.webhooks import ProductUpdateNotification
from shiprates.services.status_cache import StatusCache

logger = logging.getLogger(__name__)


def compute_webhook_signature(raw_body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_webhook_signature(raw_body: bytes, signature: Optional[str], secret: str) -> bool:
    """Constant-time check of a base64 HMAC-SHA256 signature header"""
    if not secret or not signature:
        return False
    try:
        provided = base64.b64decode(signature, validate=True)
    except (binascii.Error, ValueError):
        return False
    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return hmac.compare_digest(provided, expected)


@dataclass(frozen=True)
class InvalidationResult:
    product_id: str
    variant_ids: List[str] = field(default_factory=list)
    invalidated: int = 0


class CacheInvalidationListener:
    """Verifies product-change notifications and purges their variants"""

    def __init__(self, cache: StatusCache, webhook_secret: str):
        self.cache = cache
        self.webhook_secret = webhook_secret
        if not webhook_secret:
            logger.warning("SHOPIFY_WEBHOOK_SECRET not set - product webhooks will be rejected")

    def parse(self, raw_body: bytes) -> ProductUpdateNotification:
        try:
            payload = json.loads(raw_body)
        except (UnicodeDecodeError, ValueError) as e:
            raise InvalidNotificationError(f"Webhook body is not JSON: {e}") from e
        if not isinstance(payload, dict):
            raise InvalidNotificationError("Webhook body is not a JSON object")
        try:
            return ProductUpdateNotification.model_validate(payload)
        except ValidationError as e:
            raise InvalidNotificationError(f"Webhook body is not a product: {e.error_count()} errors") from e

    async def handle(self, raw_body: bytes, signature: Optional[str]) -> InvalidationResult:
        """
        Verify and act on one notification

        Raises:
            WebhookVerificationError: Signature missing or wrong; cache untouched
            InvalidNotificationError: Payload unparseable; cache untouched
        """
        if not verify_webhook_signature(raw_body, signature, self.webhook_secret):
            raise WebhookVerificationError("Invalid webhook signature")

        notification = self.parse(raw_body)
        variant_ids = notification.variant_ids
        invalidated = await self.cache.invalidate_for_variants(variant_ids)

        logger.info(
            f"Cache invalidated for product {notification.id} with {len(variant_ids)} variants "
            f"({invalidated} cached entries removed)"
        )
        return InvalidationResult(
            product_id=notification.id,
            variant_ids=variant_ids,
            invalidated=invalidated,
        )
