"""
Shared enums and constants used across the application.
"""

from enum import Enum


class Bucket(str, Enum):
    """The two partitions a cart's subtotal is split into"""
    READY_TO_SHIP = "RTS"
    PRE_ORDER = "PO"


class ServiceCode(str, Enum):
    """Fixed service codes reported back to the checkout"""
    READY_TO_SHIP = "RTS_STD"
    PRE_ORDER = "PO_STD"
    GIFT_CARD_FREE = "GIFT_CARD_FREE"

    @classmethod
    def for_bucket(cls, bucket: Bucket) -> "ServiceCode":
        if bucket == Bucket.PRE_ORDER:
            return cls.PRE_ORDER
        return cls.READY_TO_SHIP


class ResolverStrategyName(str, Enum):
    TWO_HOP = "two_hop"
    BATCH = "batch"
