# Status cache unit tests
import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from shiprates.core.exceptions import CacheBackendError
from shiprates.services.status_cache import MemoryBackend, RedisBackend, StatusCache, build_backend


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


"""
1. Memory backend / happy path
"""

@pytest.mark.asyncio
async def test_set_then_get(status_cache):
    await status_cache.set("111", True)
    await status_cache.set("222", False)

    assert await status_cache.get("111") is True
    assert await status_cache.get("222") is False
    assert await status_cache.get("333") is None


@pytest.mark.asyncio
async def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = StatusCache(MemoryBackend(clock=clock), default_ttl=60)

    await cache.set("111", True)
    clock.now += 59
    assert await cache.get("111") is True

    clock.now += 1
    assert await cache.get("111") is None


@pytest.mark.asyncio
async def test_explicit_ttl_overrides_default():
    clock = FakeClock()
    cache = StatusCache(MemoryBackend(clock=clock), default_ttl=60)

    await cache.set("111", True, ttl=5)
    clock.now += 6

    assert await cache.get("111") is None


@pytest.mark.asyncio
async def test_keys_are_prefixed(memory_backend, status_cache):
    await status_cache.set("111", True)

    assert await memory_backend.get("preproduct_variant_111") == "true"


@pytest.mark.asyncio
async def test_invalidate_and_bulk_invalidate(status_cache):
    for variant_id in ("1", "2", "3"):
        await status_cache.set(variant_id, True)

    await status_cache.invalidate("1")
    removed = await status_cache.invalidate_for_variants(["2", "3", "4"])

    assert removed == 2
    for variant_id in ("1", "2", "3"):
        assert await status_cache.get(variant_id) is None


@pytest.mark.asyncio
async def test_invalidate_for_no_variants_is_noop(status_cache):
    assert await status_cache.invalidate_for_variants([]) == 0


@pytest.mark.asyncio
async def test_clear_only_touches_prefixed_keys(memory_backend, status_cache):
    await memory_backend.set_with_ttl("other_key", "x", 60)
    await status_cache.set("1", True)
    await status_cache.set("2", False)

    assert await status_cache.clear() == 2
    assert await memory_backend.get("other_key") == "x"


@pytest.mark.asyncio
async def test_stats(status_cache):
    await status_cache.set("1", True)
    await status_cache.set("2", False)

    stats = await status_cache.stats()

    assert stats == {
        "backend": "memory",
        "connected": True,
        "cached_variants": 2,
        "cache_prefix": "preproduct_variant_",
    }


@pytest.mark.asyncio
async def test_undecodable_entry_is_a_miss(memory_backend, status_cache):
    await memory_backend.set_with_ttl("preproduct_variant_1", "not-json", 60)
    await memory_backend.set_with_ttl("preproduct_variant_2", '"yes"', 60)

    assert await status_cache.get("1") is None
    assert await status_cache.get("2") is None


"""
2. Failure-as-absence
"""

@pytest.fixture
def failing_backend():
    backend = MagicMock()
    backend.name = "broken"
    for method in ("get", "set_with_ttl", "delete", "delete_many", "keys"):
        setattr(backend, method, AsyncMock(side_effect=CacheBackendError("down")))
    backend.ping = AsyncMock(return_value=False)
    return backend


@pytest.mark.asyncio
async def test_backend_errors_never_propagate(failing_backend):
    cache = StatusCache(failing_backend)

    assert await cache.get("1") is None
    await cache.set("1", True)
    await cache.invalidate("1")
    assert await cache.invalidate_for_variants(["1", "2"]) == 0


@pytest.mark.asyncio
async def test_stats_reports_disconnected_backend(failing_backend):
    stats = await StatusCache(failing_backend).stats()

    assert stats["connected"] is False
    assert stats["cached_variants"] == 0


@pytest.mark.asyncio
async def test_clear_propagates_backend_errors(failing_backend):
    with pytest.raises(CacheBackendError):
        await StatusCache(failing_backend).clear()


"""
3. Redis backend
"""

@pytest.fixture
def redis_client():
    client = MagicMock()
    client.get = AsyncMock(return_value="true")
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=2)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


@pytest.mark.asyncio
async def test_redis_backend_sets_expiry(redis_client):
    cache = StatusCache(RedisBackend(client=redis_client), default_ttl=86400)

    await cache.set("789012", False)

    redis_client.set.assert_awaited_once_with("preproduct_variant_789012", "false", ex=86400)


@pytest.mark.asyncio
async def test_redis_backend_reads_json_bool(redis_client):
    cache = StatusCache(RedisBackend(client=redis_client))

    assert await cache.get("789012") is True
    redis_client.get.assert_awaited_once_with("preproduct_variant_789012")


@pytest.mark.asyncio
async def test_redis_backend_bulk_delete(redis_client):
    cache = StatusCache(RedisBackend(client=redis_client))

    removed = await cache.invalidate_for_variants(["1", "2"])

    assert removed == 2
    redis_client.delete.assert_awaited_once_with("preproduct_variant_1", "preproduct_variant_2")


@pytest.mark.asyncio
async def test_redis_connection_error_is_a_miss(redis_client):
    redis_client.get.side_effect = RedisConnectionError("Connection refused")
    cache = StatusCache(RedisBackend(client=redis_client))

    assert await cache.get("789012") is None


@pytest.mark.asyncio
async def test_redis_backend_scans_prefixed_keys(redis_client):
    async def scan_iter(match=None):
        for key in ("preproduct_variant_1", "preproduct_variant_2"):
            yield key
    redis_client.scan_iter = MagicMock(side_effect=scan_iter)
    cache = StatusCache(RedisBackend(client=redis_client))

    stats = await cache.stats()
    cleared = await cache.clear()

    assert stats["backend"] == "redis"
    assert stats["cached_variants"] == 2
    assert cleared == 2
    redis_client.scan_iter.assert_called_with(match="preproduct_variant_*")
    redis_client.delete.assert_awaited_once_with("preproduct_variant_1", "preproduct_variant_2")


@pytest.mark.asyncio
async def test_redis_scan_error_fails_clear(redis_client):
    async def scan_iter(match=None):
        yield "preproduct_variant_1"
        raise RedisConnectionError("Connection reset")
    redis_client.scan_iter = MagicMock(side_effect=scan_iter)
    cache = StatusCache(RedisBackend(client=redis_client))

    with pytest.raises(CacheBackendError):
        await cache.clear()
    assert (await cache.stats())["connected"] is False
    redis_client.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_ping_failure_means_disconnected(redis_client):
    redis_client.ping.side_effect = RedisConnectionError("Connection refused")

    assert await RedisBackend(client=redis_client).ping() is False


def test_redis_backend_passes_socket_timeouts(mocker):
    from_url = mocker.patch("redis.asyncio.from_url")

    RedisBackend(url="redis://cache:6379/0", timeout=0.5)

    from_url.assert_called_once_with(
        "redis://cache:6379/0",
        decode_responses=True,
        socket_timeout=0.5,
        socket_connect_timeout=0.5,
    )


def test_build_backend_without_url_is_memory():
    assert isinstance(build_backend(""), MemoryBackend)


def test_redis_backend_needs_url_or_client():
    with pytest.raises(ValueError):
        RedisBackend()


"""
4. Unresponsive backends
"""

async def stall(*args, **kwargs):
    await asyncio.sleep(3600)


@pytest.mark.asyncio
async def test_stalled_backend_counts_as_failure():
    backend = MagicMock()
    backend.name = "stalled"
    for method in ("get", "set_with_ttl", "delete", "delete_many", "keys", "ping"):
        setattr(backend, method, AsyncMock(side_effect=stall))
    cache = StatusCache(backend, timeout=0.05)

    assert await asyncio.wait_for(cache.get("1"), 2) is None
    await asyncio.wait_for(cache.set("1", True), 2)
    assert await asyncio.wait_for(cache.invalidate_for_variants(["1"]), 2) == 0
    assert (await asyncio.wait_for(cache.stats(), 2))["connected"] is False
    with pytest.raises(CacheBackendError):
        await asyncio.wait_for(cache.clear(), 2)


@pytest.mark.asyncio
async def test_silent_redis_server_is_a_miss(silent_redis_url):
    backend = RedisBackend(url=silent_redis_url, timeout=0.2)
    cache = StatusCache(backend, timeout=0.5)
    try:
        assert await asyncio.wait_for(cache.get("789012"), 5) is None
        await asyncio.wait_for(cache.set("789012", True), 5)
    finally:
        await backend.close()
