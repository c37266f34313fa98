# tests/conftest.py
import asyncio

import pytest
from fastapi.testclient import TestClient
from starlette.datastructures import State

from shiprates.main import app
from shiprates.core.config import Settings, get_settings
from shiprates.dependencies import (
    get_config_store,
    get_invalidation_listener,
    get_rate_service,
    get_status_cache,
)
from shiprates.schemas.config import RateConfig, RateLabels
from shiprates.services.setup import setup_services
from shiprates.services.status_cache import MemoryBackend, StatusCache
from tests.mocks import ADMIN_AUTH, WEBHOOK_SECRET
from tests.mocks.mock_strategy import MockStrategy


@pytest.fixture
def settings():
    """Provide test settings (no external services configured)"""
    return Settings(
        SHOPIFY_SHOP_DOMAIN="",
        SHOPIFY_ACCESS_TOKEN="",
        SHOPIFY_WEBHOOK_SECRET=WEBHOOK_SECRET,
        PREPRODUCT_API_TOKEN="",
        REDIS_URL="",
        ADMIN_USERNAME=ADMIN_AUTH[0],
        ADMIN_PASSWORD=ADMIN_AUTH[1],
        ENVIRONMENT="test",
    )

@pytest.fixture
def rate_config():
    """The default rate configuration: free over 5000, otherwise 500"""
    return RateConfig(
        threshold=5000,
        fee_under_threshold=500,
        labels=RateLabels(rts="Ships Now (In-Stock)", po="Ships Later (Pre-Order)"),
        description="Free over $50",
        currency="USD",
        kill_switch=False,
    )

@pytest.fixture
def memory_backend():
    return MemoryBackend()

@pytest.fixture
def status_cache(memory_backend):
    return StatusCache(memory_backend, prefix="preproduct_variant_", default_ttl=60)

@pytest.fixture
def mock_strategy():
    return MockStrategy()

@pytest.fixture
async def silent_redis_url():
    """URL of a TCP server that accepts connections and never answers"""
    connections = []

    async def accept(reader, writer):
        connections.append(writer)

    server = await asyncio.start_server(accept, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    yield f"redis://127.0.0.1:{port}"

    for writer in connections:
        writer.close()
    server.close()
    await server.wait_closed()

@pytest.fixture
def services(settings, memory_backend, mock_strategy):
    """Service graph on an in-memory cache with a mock status source"""
    state = State()
    setup_services(state, settings, backend=memory_backend)
    state.status_resolver.strategy = mock_strategy
    return state

@pytest.fixture
def test_client(settings, services):
    """Provide a test client whose routes use the ``services`` fixture"""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_status_cache] = lambda: services.status_cache
    app.dependency_overrides[get_config_store] = lambda: services.config_store
    app.dependency_overrides[get_rate_service] = lambda: services.rate_service
    app.dependency_overrides[get_invalidation_listener] = lambda: services.invalidation_listener
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
