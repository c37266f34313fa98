"""
Pre-order Status Cache

Caches the pre-order flag of each variant with a time-to-live so the rate
callback does not have to hit Shopify/PreProduct for every checkout.

Two layers:
- ``StatusCacheBackend`` implementations talk to the store and are allowed to
  raise ``CacheBackendError``.
- ``StatusCache`` wraps a backend and turns every backend failure into a
  cache miss (reads) or a logged no-op (writes/deletes). Caching is an
  optimisation; rate computation must never fail because of it.
"""

import asyncio
import fnmatch
import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Dict, Iterable, List, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from shiprates.core.exceptions import CacheBackendError

logger = logging.getLogger(__name__)


class StatusCacheBackend(ABC):
    """Base class for key-value stores holding cached statuses"""

    name = "generic"

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> int:
        pass

    @abstractmethod
    async def delete_many(self, keys: List[str]) -> int:
        pass

    @abstractmethod
    async def keys(self, pattern: str) -> List[str]:
        pass

    @abstractmethod
    async def ping(self) -> bool:
        pass

    async def close(self) -> None:
        pass


class RedisBackend(StatusCacheBackend):
    """Redis-backed store; atomic per-key operations are provided by Redis"""

    name = "redis"

    def __init__(
        self,
        url: Optional[str] = None,
        client: Optional[Any] = None,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            url: Redis connection URL (ignored when ``client`` is given)
            client: An existing ``redis.asyncio`` client, mainly for tests
            timeout: Connect and read timeout in seconds for the built client
        """
        if client is None and not url:
            raise ValueError("RedisBackend needs either a url or a client")
        self.client = client or aioredis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except (RedisError, OSError) as e:
            raise CacheBackendError(f"Redis GET failed: {e}") from e

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self.client.set(key, value, ex=ttl_seconds)
        except (RedisError, OSError) as e:
            raise CacheBackendError(f"Redis SET failed: {e}") from e

    async def delete(self, key: str) -> int:
        try:
            return await self.client.delete(key)
        except (RedisError, OSError) as e:
            raise CacheBackendError(f"Redis DEL failed: {e}") from e

    async def delete_many(self, keys: List[str]) -> int:
        if not keys:
            return 0
        try:
            return await self.client.delete(*keys)
        except (RedisError, OSError) as e:
            raise CacheBackendError(f"Redis DEL failed: {e}") from e

    async def keys(self, pattern: str) -> List[str]:
        try:
            return [key async for key in self.client.scan_iter(match=pattern)]
        except (RedisError, OSError) as e:
            raise CacheBackendError(f"Redis SCAN failed: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError):
            return False

    async def close(self) -> None:
        await self.client.aclose()


class MemoryBackend(StatusCacheBackend):
    """In-process store with monotonic-clock expiry.

    Used when no REDIS_URL is configured (single-process deployments, local
    development) and throughout the tests.
    """

    name = "memory"

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        # Key: cache key, Value: (value, expires_at)
        self._entries: Dict[str, tuple] = {}

    def _purge_if_expired(self, key: str) -> None:
        entry = self._entries.get(key)
        if entry is not None and entry[1] <= self._clock():
            del self._entries[key]

    async def get(self, key: str) -> Optional[str]:
        self._purge_if_expired(key)
        entry = self._entries.get(key)
        return entry[0] if entry else None

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> int:
        self._purge_if_expired(key)
        return 1 if self._entries.pop(key, None) is not None else 0

    async def delete_many(self, keys: List[str]) -> int:
        deleted = 0
        for key in keys:
            deleted += await self.delete(key)
        return deleted

    async def keys(self, pattern: str) -> List[str]:
        for key in list(self._entries):
            self._purge_if_expired(key)
        return [key for key in self._entries if fnmatch.fnmatchcase(key, pattern)]

    async def ping(self) -> bool:
        return True


def build_backend(redis_url: str, timeout: Optional[float] = None) -> StatusCacheBackend:
    """Pick the backend for the configured URL (empty → in-memory)"""
    if redis_url:
        logger.info("Status cache using Redis backend")
        return RedisBackend(url=redis_url, timeout=timeout)
    logger.warning("REDIS_URL not set - status cache is process-local")
    return MemoryBackend()


class StatusCache:
    """
    Variant id → pre-order flag, with failure-as-absence semantics.

    - ``get`` returns ``None`` for a miss, an expired entry, an undecodable
      value or any backend error.
    - ``set``/``invalidate``/``invalidate_for_variants`` log and swallow
      backend errors.
    - A backend call slower than ``timeout`` seconds counts as a backend error.
    """

    def __init__(
        self,
        backend: StatusCacheBackend,
        prefix: str = "preproduct_variant_",
        default_ttl: int = 24 * 60 * 60,
        timeout: Optional[float] = None,
    ):
        self.backend = backend
        self.prefix = prefix
        self.default_ttl = default_ttl
        self.timeout = timeout

    async def _call(self, operation: Awaitable[Any]) -> Any:
        if not self.timeout:
            return await operation
        try:
            return await asyncio.wait_for(operation, self.timeout)
        except asyncio.TimeoutError as e:
            raise CacheBackendError(f"{self.backend.name} call timed out after {self.timeout}s") from e

    def key_for(self, variant_id: str) -> str:
        return f"{self.prefix}{variant_id}"

    async def get(self, variant_id: str) -> Optional[bool]:
        key = self.key_for(variant_id)
        try:
            raw = await self._call(self.backend.get(key))
        except CacheBackendError as e:
            logger.warning(f"Cache read error for variant {variant_id}: {e}")
            return None

        if raw is None:
            return None

        try:
            value = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Discarding undecodable cache entry {key}: {raw!r}")
            return None

        if not isinstance(value, bool):
            logger.warning(f"Discarding non-boolean cache entry {key}: {raw!r}")
            return None
        return value

    async def set(self, variant_id: str, is_pre_order: bool, ttl: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        try:
            await self._call(self.backend.set_with_ttl(
                self.key_for(variant_id), json.dumps(bool(is_pre_order)), ttl
            ))
        except CacheBackendError as e:
            logger.warning(f"Cache write error for variant {variant_id}: {e}")

    async def invalidate(self, variant_id: str) -> None:
        try:
            await self._call(self.backend.delete(self.key_for(variant_id)))
        except CacheBackendError as e:
            logger.warning(f"Cache deletion error for variant {variant_id}: {e}")

    async def invalidate_for_variants(self, variant_ids: Iterable[str]) -> int:
        """Delete every listed variant; returns how many entries existed"""
        keys = [self.key_for(variant_id) for variant_id in variant_ids]
        if not keys:
            return 0
        try:
            return await self._call(self.backend.delete_many(keys))
        except CacheBackendError as e:
            logger.warning(f"Cache deletion error for {len(keys)} variants: {e}")
            return 0

    async def clear(self) -> int:
        """
        Delete every cached status under this cache's prefix.

        Unlike the other operations this one propagates ``CacheBackendError``
        so the admin endpoint can report the backend as unavailable.
        """
        keys = await self._call(self.backend.keys(f"{self.prefix}*"))
        if not keys:
            return 0
        await self._call(self.backend.delete_many(keys))
        return len(keys)

    async def is_connected(self) -> bool:
        try:
            return await self._call(self.backend.ping())
        except CacheBackendError:
            return False

    async def stats(self) -> Dict[str, Any]:
        """Observability only: entry count and backend connectivity"""
        connected = await self.is_connected()
        cached_variants = 0
        if connected:
            try:
                cached_variants = len(await self._call(self.backend.keys(f"{self.prefix}*")))
            except CacheBackendError as e:
                logger.warning(f"Cache stats error: {e}")
                connected = False
        return {
            "backend": self.backend.name,
            "connected": connected,
            "cached_variants": cached_variants,
            "cache_prefix": self.prefix,
        }

    async def close(self) -> None:
        await self.backend.close()
