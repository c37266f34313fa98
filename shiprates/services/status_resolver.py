"""
Pre-order Status Resolver

Answers "is this variant on pre-order?" for every variant in a cart:

1. cached statuses are read from the ``StatusCache``
2. the rest are looked up through a ``ResolutionStrategy``
3. every answer (including the ``False`` default for lookups that failed) is
   written back to the cache

Two strategies exist because shops expose the flag differently:

- ``TwoHopStrategy``: Shopify REST variant → product id, then PreProduct's
  ``on_preorder`` endpoint per product+variant pair
- ``BatchMetafieldStrategy``: one Shopify GraphQL ``nodes`` query reading a
  boolean metafield for a whole chunk of variants

Nothing in here raises to the caller; the returned mapping always has one
entry per requested id.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from shiprates.core.enums import ResolverStrategyName
from shiprates.core.exceptions import StatusSourceError
from shiprates.services.preproduct.client import PreProductClient
from shiprates.services.shopify.client import ShopifyClient, to_variant_gid
from shiprates.services.status_cache import StatusCache

logger = logging.getLogger(__name__)

TRUTHY_METAFIELD_VALUES = {"true", "1", "yes"}


class ResolutionStrategy(ABC):
    """Base class for external pre-order status lookups"""

    name = "generic"

    @abstractmethod
    async def lookup(self, variant_ids: List[str]) -> Dict[str, bool]:
        """
        Look up pre-order status for variants missing from the cache

        Args:
            variant_ids: Variant ids to resolve (no duplicates)

        Returns:
            Mapping for the ids that were resolved. Ids that could not be
            resolved are simply left out; implementations log and swallow
            per-id or per-batch errors.
        """
        pass


class TwoHopStrategy(ResolutionStrategy):
    """Shopify variant → product id, then PreProduct per product+variant"""

    name = ResolverStrategyName.TWO_HOP.value

    def __init__(
        self,
        shopify: ShopifyClient,
        preproduct: PreProductClient,
        max_concurrency: int = 0,
    ):
        self.shopify = shopify
        self.preproduct = preproduct
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency > 0 else None

    async def _resolve_one(self, variant_id: str) -> Optional[bool]:
        try:
            product_id = await self.shopify.get_product_id_for_variant(variant_id)
            is_pre_order = await self.preproduct.is_on_preorder(product_id, variant_id)
        except StatusSourceError as e:
            logger.error(f"Error resolving pre-order status for variant {variant_id}: {e}")
            return None

        logger.info(
            f"PreProduct API: Variant {variant_id} (Product {product_id}) is "
            f"{'pre-order' if is_pre_order else 'ready-to-ship'}"
        )
        return is_pre_order

    async def _resolve_bounded(self, variant_id: str) -> Optional[bool]:
        if self._semaphore is None:
            return await self._resolve_one(variant_id)
        async with self._semaphore:
            return await self._resolve_one(variant_id)

    async def lookup(self, variant_ids: List[str]) -> Dict[str, bool]:
        outcomes = await asyncio.gather(
            *(self._resolve_bounded(variant_id) for variant_id in variant_ids)
        )
        return {
            variant_id: outcome
            for variant_id, outcome in zip(variant_ids, outcomes)
            if outcome is not None
        }


class BatchMetafieldStrategy(ResolutionStrategy):
    """Single-hop lookup of a per-variant metafield via Shopify GraphQL"""

    name = ResolverStrategyName.BATCH.value

    def __init__(
        self,
        shopify: ShopifyClient,
        namespace: str = "preproduct",
        key: str = "on_preorder",
        batch_size: int = 250,
        max_concurrency: int = 0,
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.shopify = shopify
        self.namespace = namespace
        self.key = key
        self.batch_size = batch_size
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency > 0 else None

    @staticmethod
    def parse_flag(value: Optional[str]) -> bool:
        # No metafield on the variant means it is not flagged
        if value is None:
            return False
        return str(value).strip().lower() in TRUTHY_METAFIELD_VALUES

    async def _resolve_chunk(self, chunk: List[str]) -> Dict[str, bool]:
        try:
            if self._semaphore is None:
                values = await self.shopify.get_variant_metafields(chunk, self.namespace, self.key)
            else:
                async with self._semaphore:
                    values = await self.shopify.get_variant_metafields(chunk, self.namespace, self.key)
        except StatusSourceError as e:
            logger.error(f"Error resolving pre-order metafields for {len(chunk)} variants: {e}")
            return {}

        # Node ids come back numeric; key results by the id form the caller sent
        requested: Dict[str, List[str]] = {}
        for variant_id in chunk:
            requested.setdefault(to_variant_gid(variant_id), []).append(variant_id)

        results: Dict[str, bool] = {}
        for node_id, value in values.items():
            for variant_id in requested.get(to_variant_gid(node_id), []):
                results[variant_id] = self.parse_flag(value)
        return results

    async def lookup(self, variant_ids: List[str]) -> Dict[str, bool]:
        chunks = [
            variant_ids[i:i + self.batch_size]
            for i in range(0, len(variant_ids), self.batch_size)
        ]
        results: Dict[str, bool] = {}
        for chunk_result in await asyncio.gather(*(self._resolve_chunk(chunk) for chunk in chunks)):
            results.update(chunk_result)
        return results


def get_strategy(
    name: str,
    shopify: ShopifyClient,
    preproduct: Optional[PreProductClient] = None,
    namespace: str = "preproduct",
    key: str = "on_preorder",
    batch_size: int = 250,
    max_concurrency: int = 0,
) -> ResolutionStrategy:
    """
    Factory function to build the configured resolution strategy

    Raises:
        ValueError: If the strategy name is unknown or its client is missing
    """
    try:
        strategy_name = ResolverStrategyName(name)
    except ValueError:
        raise ValueError(f"Resolver strategy '{name}' is not supported")

    if strategy_name == ResolverStrategyName.TWO_HOP:
        if preproduct is None:
            raise ValueError("two_hop strategy requires a PreProduct client")
        return TwoHopStrategy(shopify, preproduct, max_concurrency=max_concurrency)

    return BatchMetafieldStrategy(
        shopify,
        namespace=namespace,
        key=key,
        batch_size=batch_size,
        max_concurrency=max_concurrency,
    )


class StatusResolver:
    """Cache-aside resolution of variant pre-order flags"""

    def __init__(
        self,
        cache: StatusCache,
        strategy: Optional[ResolutionStrategy],
        ttl_seconds: int = 24 * 60 * 60,
        timeout_seconds: Optional[float] = 5.0,
        cache_failed_lookups: bool = True,
    ):
        """
        Args:
            cache: Status cache (reads/writes never raise)
            strategy: External lookup; ``None`` means no source is configured
                and every uncached variant defaults to ready-to-ship
            ttl_seconds: Expiry of entries written back to the cache
            timeout_seconds: Upper bound on the whole external lookup
            cache_failed_lookups: Also cache the ``False`` default for ids the
                strategy could not resolve
        """
        self.cache = cache
        self.strategy = strategy
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds
        self.cache_failed_lookups = cache_failed_lookups

    async def _lookup_uncached(self, variant_ids: List[str]) -> Dict[str, bool]:
        if self.strategy is None:
            logger.warning(f"No status source configured; {len(variant_ids)} variants default to ready-to-ship")
            return {}
        try:
            if self.timeout_seconds:
                return await asyncio.wait_for(self.strategy.lookup(variant_ids), self.timeout_seconds)
            return await self.strategy.lookup(variant_ids)
        except asyncio.TimeoutError:
            logger.error(
                f"Status lookup via {self.strategy.name} timed out after {self.timeout_seconds}s "
                f"for {len(variant_ids)} variants"
            )
        except Exception as e:
            logger.exception(f"Status lookup via {self.strategy.name} failed: {e}")
        return {}

    async def resolve(self, variant_ids: Iterable[str]) -> Dict[str, bool]:
        """
        Resolve pre-order status for every requested variant

        Returns:
            Dict with exactly one entry per distinct requested id
        """
        requested: List[str] = list(dict.fromkeys(str(variant_id) for variant_id in variant_ids))
        results: Dict[str, bool] = {}
        uncached: List[str] = []

        cached_values = await asyncio.gather(*(self.cache.get(variant_id) for variant_id in requested))
        for variant_id, cached in zip(requested, cached_values):
            if cached is None:
                uncached.append(variant_id)
            else:
                results[variant_id] = cached

        if not uncached:
            return results

        logger.debug(f"Status cache: {len(results)} hits, {len(uncached)} misses")
        resolved = await self._lookup_uncached(uncached)

        writes = []
        for variant_id in uncached:
            if variant_id in resolved:
                results[variant_id] = bool(resolved[variant_id])
                writes.append(self.cache.set(variant_id, results[variant_id], self.ttl_seconds))
            else:
                logger.warning(f"Variant {variant_id} unresolved; defaulting to ready-to-ship")
                results[variant_id] = False
                if self.cache_failed_lookups:
                    writes.append(self.cache.set(variant_id, False, self.ttl_seconds))

        await asyncio.gather(*writes)
        return results
