import json
import logging
import httpx
from typing import Dict, Optional

from shiprates.core.exceptions import PreProductAPIError

logger = logging.getLogger(__name__)


class PreProductClient:
    """
    Asynchronous client for the PreProduct pre-order API.

    Only the ``on_preorder`` lookup is used: given a product and one of its
    variants, PreProduct answers ``{"on_preorder": true|false}``.

    Documentation: https://preproduct.io/docs
    """

    DEFAULT_BASE_URL = "https://api.preproduct.io/api/v2"

    def __init__(self, api_token: str, base_url: str = DEFAULT_BASE_URL, timeout: float = 10.0):
        if not api_token:
            raise ValueError("PREPRODUCT_API_TOKEN must be set")
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": self.api_token,
            "Content-Type": "application/json",
        }

    async def _make_request(self, endpoint: str, params: Optional[Dict] = None) -> Dict:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.debug(f"Making GET request to {url} with params {params}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method="GET",
                    url=url,
                    headers=self._get_headers(),
                    params=params,
                )
        except httpx.TimeoutException as e:
            logger.error(f"PreProduct timeout: {str(e)}")
            raise PreProductAPIError(f"Request timed out: {str(e)}")
        except httpx.RequestError as e:
            logger.error(f"PreProduct network error: {str(e)}")
            raise PreProductAPIError(f"Network error: {str(e)}")

        if not 200 <= response.status_code < 300:
            logger.error(f"PreProduct API error {response.status_code}: {response.text}")
            raise PreProductAPIError(f"PreProduct API failed: {response.status_code} {response.text}")

        try:
            return response.json()
        except (json.JSONDecodeError, ValueError):
            raise PreProductAPIError(f"Failed to decode JSON response: {response.text[:200]}")

    async def is_on_preorder(self, product_id: str, variant_id: str) -> bool:
        """
        Ask PreProduct whether a specific variant is currently on pre-order

        Raises:
            PreProductAPIError: On any transport or payload problem
        """
        data = await self._make_request(
            f"/on_preorder/{product_id}",
            params={"any_variant": "false", "variant_ids": str(variant_id)},
        )
        if not isinstance(data, dict):
            raise PreProductAPIError(f"Malformed on_preorder response: {data!r}")

        logger.debug(f"PreProduct response for product {product_id} variant {variant_id}: {data}")
        return bool(data.get("on_preorder", False))
