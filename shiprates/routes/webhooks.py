import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from shiprates.core.exceptions import InvalidNotificationError, WebhookVerificationError
from shiprates.dependencies import get_invalidation_listener
from shiprates.services.cache_invalidation import CacheInvalidationListener

router = APIRouter(tags=["webhooks"])

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Shopify-Hmac-Sha256"


@router.post("/webhook/product-update")
async def product_update_webhook(
    request: Request,
    listener: CacheInvalidationListener = Depends(get_invalidation_listener),
):
    """Invalidate cached pre-order statuses for every variant of an updated product"""
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    try:
        result = await listener.handle(body, signature)
    except WebhookVerificationError:
        logger.warning("Rejected product webhook with invalid signature")
        raise HTTPException(status_code=401, detail="Unauthorized")
    except InvalidNotificationError as e:
        logger.warning(f"Rejected malformed product webhook: {e}")
        raise HTTPException(status_code=400, detail="Malformed product payload")

    return {
        "status": "received",
        "product_id": result.product_id,
        "variants": len(result.variant_ids),
        "invalidated": result.invalidated,
    }
