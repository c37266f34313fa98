"""
Rate Service

Glue between the carrier-service callback and the pure rate engine: parses
the request, skips status resolution when the answer is already known
(kill switch, empty cart, gift cards only), resolves the rest and computes.
"""

import logging
import time
from typing import Any, Dict, List

from pydantic import ValidationError

from shiprates.core.exceptions import InvalidRateRequestError
from shiprates.schemas.rates import RateQuote, RateRequest
from shiprates.services.config_store import RateConfigStore
from shiprates.services.rate_engine import bucket_subtotals, compute_rates, is_gift_card_cart
from shiprates.services.status_resolver import StatusResolver

logger = logging.getLogger(__name__)


def parse_rate_request(payload: Any) -> RateRequest:
    """
    Validate a Shopify carrier-service payload

    Raises:
        InvalidRateRequestError: If the ``rate``/``items`` structure is missing or invalid
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("rate"), dict):
        raise InvalidRateRequestError("Invalid rate request format")
    if "items" not in payload["rate"]:
        raise InvalidRateRequestError("Invalid rate request format")
    try:
        return RateRequest.model_validate(payload)
    except ValidationError as e:
        raise InvalidRateRequestError(f"Invalid rate request format: {e.error_count()} errors") from e


class RateService:
    """Service producing rate quotes for one cart"""

    def __init__(self, resolver: StatusResolver, config_store: RateConfigStore):
        self.resolver = resolver
        self.config_store = config_store

    async def quote(self, request: RateRequest) -> List[RateQuote]:
        start_time = time.perf_counter()
        config = self.config_store.snapshot()
        items = request.rate.items

        if config.kill_switch or not items or is_gift_card_cart(items):
            return compute_rates(items, {}, config)

        status_map: Dict[str, bool] = await self.resolver.resolve(item.variant_id for item in items)
        rates = compute_rates(items, status_map, config)

        processing_ms = (time.perf_counter() - start_time) * 1000
        subtotals = bucket_subtotals(items, status_map)
        logger.info(f"Rates calculated in {processing_ms:.0f}ms for {len(items)} items")
        logger.info(
            f"RTS subtotal: {subtotals.ready_to_ship / 100:.2f}, "
            f"PO subtotal: {subtotals.pre_order / 100:.2f} {config.currency}"
        )
        return rates
