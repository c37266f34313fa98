from .base import BaseSchema
from .rates import (
    LineItem,
    RateRequestBody,
    RateRequest,
    RateQuote,
    RateResponse,
)
from .config import (
    RateLabels,
    RateConfig,
    RateLabelsUpdate,
    RateConfigUpdate,
)
from .webhooks import VariantRef, ProductUpdateNotification
