"""
Rate Engine

Pure computation of the shipping rates shown at checkout. No I/O, no shared
state: the same (items, status_map, config) always yields the same list.

Each cart line lands in exactly one bucket (ready-to-ship or pre-order) and
each non-empty bucket gets one quote: free at or above the threshold,
``fee_under_threshold`` below it.
"""

from dataclasses import dataclass
from typing import List, Mapping, Sequence

from shiprates.core.enums import Bucket, ServiceCode
from shiprates.schemas.config import RateConfig
from shiprates.schemas.rates import LineItem, RateQuote

GIFT_CARD_PRODUCT_TYPE = "Gift Card"
GIFT_CARD_SERVICE_NAME = "Free Shipping"
GIFT_CARD_DESCRIPTION = "Gift cards ship free"


@dataclass(frozen=True)
class BucketSubtotals:
    ready_to_ship: int = 0
    pre_order: int = 0

    def for_bucket(self, bucket: Bucket) -> int:
        return self.pre_order if bucket == Bucket.PRE_ORDER else self.ready_to_ship


def is_gift_card(item: LineItem) -> bool:
    if item.product_type == GIFT_CARD_PRODUCT_TYPE:
        return True
    title = item.title if item.title is not None else item.name
    return bool(title) and "gift card" in title.lower()


def is_gift_card_cart(items: Sequence[LineItem]) -> bool:
    return bool(items) and all(is_gift_card(item) for item in items)


def bucket_for(item: LineItem, status_map: Mapping[str, bool]) -> Bucket:
    return Bucket.PRE_ORDER if status_map.get(item.variant_id, False) else Bucket.READY_TO_SHIP


def bucket_subtotals(items: Sequence[LineItem], status_map: Mapping[str, bool]) -> BucketSubtotals:
    ready_to_ship = 0
    pre_order = 0
    for item in items:
        if bucket_for(item, status_map) == Bucket.PRE_ORDER:
            pre_order += item.extended_price
        else:
            ready_to_ship += item.extended_price
    return BucketSubtotals(ready_to_ship=ready_to_ship, pre_order=pre_order)


def gift_card_quote(config: RateConfig) -> RateQuote:
    return RateQuote(
        service_name=GIFT_CARD_SERVICE_NAME,
        service_code=ServiceCode.GIFT_CARD_FREE.value,
        total_price="0",
        currency=config.currency,
        description=GIFT_CARD_DESCRIPTION,
    )


def bucket_price(subtotal: int, config: RateConfig) -> int:
    return 0 if subtotal >= config.threshold else config.fee_under_threshold


def compute_rates(
    items: Sequence[LineItem],
    status_map: Mapping[str, bool],
    config: RateConfig,
) -> List[RateQuote]:
    """
    Compute the ordered rate list for a cart

    Args:
        items: Cart lines
        status_map: variant id → pre-order flag (missing ids count as ready-to-ship)
        config: Configuration snapshot for this request

    Returns:
        Zero, one or two quotes; the ready-to-ship quote always comes first
    """
    if config.kill_switch or not items:
        return []

    if is_gift_card_cart(items):
        return [gift_card_quote(config)]

    subtotals = bucket_subtotals(items, status_map)
    labels = {Bucket.READY_TO_SHIP: config.labels.rts, Bucket.PRE_ORDER: config.labels.po}

    rates: List[RateQuote] = []
    for bucket in (Bucket.READY_TO_SHIP, Bucket.PRE_ORDER):
        subtotal = subtotals.for_bucket(bucket)
        if subtotal <= 0:
            continue
        rates.append(
            RateQuote(
                service_name=labels[bucket],
                service_code=ServiceCode.for_bucket(bucket).value,
                total_price=str(bucket_price(subtotal, config)),
                currency=config.currency,
                description=config.description,
            )
        )
    return rates
