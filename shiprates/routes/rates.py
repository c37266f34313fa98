# shiprates/routes/rates.py
"""
Shopify carrier-service callback.

Checkout must never hard-fail because of this endpoint, so every error path
still answers with an empty ``rates`` list.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from shiprates.core.exceptions import InvalidRateRequestError
from shiprates.dependencies import get_rate_service
from shiprates.services.rate_service import RateService, parse_rate_request

router = APIRouter(tags=["rates"])

logger = logging.getLogger(__name__)


@router.post("/rates")
async def calculate_rates(
    request: Request,
    rate_service: RateService = Depends(get_rate_service),
):
    """Return the ready-to-ship / pre-order rates for a cart"""
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Rate request body is not JSON")
        return JSONResponse(status_code=400, content={"error": "Invalid rate request format", "rates": []})

    try:
        rate_request = parse_rate_request(payload)
    except InvalidRateRequestError as e:
        logger.warning(f"Rejected rate request: {e}")
        return JSONResponse(status_code=400, content={"error": "Invalid rate request format", "rates": []})

    try:
        rates = await rate_service.quote(rate_request)
    except Exception as e:
        logger.exception(f"Rate calculation error: {e}")
        return JSONResponse(status_code=500, content={"error": "Rate calculation failed", "rates": []})

    return {"rates": [rate.model_dump() for rate in rates]}
