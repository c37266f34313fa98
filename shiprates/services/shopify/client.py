# shiprates.services.shopify.client

import json
import logging
import httpx
from typing import Dict, List, Optional, Any

from shiprates.core.exceptions import ShopifyAPIError, ShopifyGraphQLError

logger = logging.getLogger(__name__)

VARIANT_GID_PREFIX = "gid://shopify/ProductVariant/"

VARIANT_METAFIELDS_QUERY = """
query VariantPreOrderFlags($ids: [ID!]!, $namespace: String!, $key: String!) {
  nodes(ids: $ids) {
    ... on ProductVariant {
      id
      metafield(namespace: $namespace, key: $key) {
        value
      }
    }
  }
}
"""


def to_variant_gid(variant_id: str) -> str:
    variant_id = str(variant_id)
    if variant_id.startswith(VARIANT_GID_PREFIX):
        return variant_id
    return f"{VARIANT_GID_PREFIX}{variant_id}"


def from_variant_gid(gid: str) -> str:
    return gid[len(VARIANT_GID_PREFIX):] if gid.startswith(VARIANT_GID_PREFIX) else gid


class ShopifyClient:
    """
    Asynchronous client for the two Shopify Admin API calls the resolver needs.

    - REST: ``get_variant`` / ``get_product_id_for_variant`` (variant → owning product)
    - GraphQL: ``execute`` and ``get_variant_metafields`` (one round trip for
      a whole set of variants)

    Every failure (transport error, timeout, non-2xx, bad JSON, GraphQL
    ``errors``) surfaces as ``ShopifyAPIError`` or its subclass
    ``ShopifyGraphQLError``.
    """

    def __init__(self, shop_domain: str, access_token: str, api_version: str = "2024-07", timeout: float = 10.0):
        """
        Initialize the Shopify client

        Args:
            shop_domain: e.g. ``my-shop.myshopify.com``
            access_token: Admin API access token
            api_version: Admin API version segment
            timeout: Per-request timeout in seconds
        """
        if not shop_domain or not access_token:
            raise ValueError("SHOPIFY_SHOP_DOMAIN and SHOPIFY_ACCESS_TOKEN must be set")

        self.shop_domain = shop_domain
        self.access_token = access_token
        self.api_version = api_version
        self.timeout = timeout
        self.base_url = f"https://{shop_domain}/admin/api/{api_version}"
        self.graphql_url = f"{self.base_url}/graphql.json"
        logger.info(f"Initializing ShopifyClient for {shop_domain} (API version {api_version})")

    def _get_headers(self) -> Dict[str, str]:
        return {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _make_request(
        self,
        method: str,
        url: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
    ) -> Dict:
        """
        Make a request to the Shopify Admin API

        Args:
            method: HTTP method
            url: Absolute URL
            data: JSON body
            params: Query parameters

        Returns:
            Dict: Decoded JSON response

        Raises:
            ShopifyAPIError: If the request fails for any reason
        """
        logger.debug(f"Making {method} request to {url}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(),
                    json=data,
                    params=params,
                )
        except httpx.TimeoutException as e:
            logger.error(f"Shopify timeout: {str(e)}")
            raise ShopifyAPIError(f"Request timed out: {str(e)}")
        except httpx.RequestError as e:
            logger.error(f"Shopify network error: {str(e)}")
            raise ShopifyAPIError(f"Network error: {str(e)}")

        if response.status_code == 429:
            logger.warning(f"Shopify rate limit hit (Retry-After: {response.headers.get('Retry-After')})")

        if not 200 <= response.status_code < 300:
            logger.error(f"Shopify API error {response.status_code}: {response.text}")
            raise ShopifyAPIError(f"Request failed: {response.status_code} {response.text}")

        try:
            return response.json()
        except (json.JSONDecodeError, ValueError):
            raise ShopifyAPIError(f"Failed to decode JSON response: {response.text[:200]}")

    # --- REST ---

    async def get_variant(self, variant_id: str) -> Dict[str, Any]:
        """Fetch a single variant resource"""
        data = await self._make_request("GET", f"{self.base_url}/variants/{variant_id}.json")
        variant = data.get("variant") if isinstance(data, dict) else None
        if not isinstance(variant, dict):
            raise ShopifyAPIError(f"Malformed variant response for {variant_id}")
        return variant

    async def get_product_id_for_variant(self, variant_id: str) -> str:
        """
        Resolve a variant to its owning product id

        Raises:
            ShopifyAPIError: If the variant cannot be fetched or has no product_id
        """
        variant = await self.get_variant(variant_id)
        product_id = variant.get("product_id")
        if product_id is None:
            raise ShopifyAPIError(f"Variant {variant_id} has no product_id")
        return str(product_id)

    # --- GraphQL ---

    async def execute(self, query: str, variables: Optional[Dict] = None) -> Dict[str, Any]:
        """Run a GraphQL query and return its ``data`` member"""
        payload = {"query": query}
        if variables:
            payload["variables"] = variables

        response_data = await self._make_request("POST", self.graphql_url, data=payload)

        if not isinstance(response_data, dict):
            raise ShopifyGraphQLError([{"message": "Response is not a JSON object"}])
        if response_data.get("errors"):
            raise ShopifyGraphQLError(response_data["errors"])

        return response_data.get("data") or {}

    async def get_variant_metafields(
        self,
        variant_ids: List[str],
        namespace: str,
        key: str,
    ) -> Dict[str, Optional[str]]:
        """
        Fetch one metafield for many variants in a single ``nodes`` query.

        Returns:
            Dict mapping variant id → metafield value (``None`` when the
            variant exists but has no such metafield). Variants Shopify did
            not return a node for are absent from the mapping.
        """
        if not variant_ids:
            return {}

        data = await self.execute(
            VARIANT_METAFIELDS_QUERY,
            {
                "ids": [to_variant_gid(variant_id) for variant_id in variant_ids],
                "namespace": namespace,
                "key": key,
            },
        )

        nodes = data.get("nodes")
        if not isinstance(nodes, list):
            raise ShopifyGraphQLError([{"message": "Response has no nodes list"}])

        values: Dict[str, Optional[str]] = {}
        for node in nodes:
            if not isinstance(node, dict) or "id" not in node:
                continue
            metafield = node.get("metafield")
            values[from_variant_gid(node["id"])] = metafield.get("value") if isinstance(metafield, dict) else None
        return values
