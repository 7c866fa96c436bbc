"""Unit tests for storage backend selection"""

from unittest.mock import AsyncMock

import pytest

from multiauth_service.infrastructure.auth.memory_store import MemorySessionStore, MemoryStateStore
from multiauth_service.infrastructure.auth.storage import (
    Storage,
    close_storage,
    get_storage,
    initialize_storage,
)
from multiauth_service.infrastructure.redis.client import RedisClient

pytestmark = pytest.mark.unit


@pytest.mark.asyncio
async def test_memory_backend(test_settings):
    try:
        storage = await initialize_storage(test_settings)

        assert get_storage() is storage
        assert storage.backend == "memory"
        assert isinstance(storage.state_store, MemoryStateStore)
        session = storage.session("abc")
        assert isinstance(session, MemorySessionStore)
        assert session.session_id == "abc"
    finally:
        await close_storage()


@pytest.mark.asyncio
async def test_sessions_share_backend(test_settings):
    try:
        storage = await initialize_storage(test_settings)
        await storage.session("abc").set_data("ns", "key", "value")

        assert await storage.session("abc").get_data("ns", "key") == "value"
    finally:
        await close_storage()


@pytest.mark.asyncio
async def test_invalid_backend(test_settings):
    settings = test_settings.model_copy(update={"store_backend": "file"})

    with pytest.raises(ValueError, match="Unknown STORE_BACKEND"):
        await initialize_storage(settings)


@pytest.mark.asyncio
async def test_get_after_close(test_settings):
    await initialize_storage(test_settings)
    await close_storage()

    with pytest.raises(RuntimeError, match="not initialized"):
        get_storage()


class TestHealthCheck:
    """Test storage health reporting"""

    @pytest.mark.asyncio
    async def test_memory_backend_is_healthy(self, test_settings):
        try:
            storage = await initialize_storage(test_settings)

            assert await storage.health_check() is True
        finally:
            await close_storage()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reachable", [True, False])
    async def test_redis_backend_asks_client(self, state_store, session_backend, reachable):
        redis_client = AsyncMock()
        redis_client.health_check = AsyncMock(return_value=reachable)
        storage = Storage("redis", state_store, session_backend.session, redis_client=redis_client)

        assert await storage.health_check() is reachable
        redis_client.health_check.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_redis_client_ping(self):
        client = RedisClient("redis://localhost:6379/0")
        client._client = AsyncMock()
        client._client.ping = AsyncMock(return_value=True)

        assert await client.health_check() is True

    @pytest.mark.asyncio
    async def test_redis_client_ping_fails(self):
        client = RedisClient("redis://localhost:6379/0")
        client._client = AsyncMock()
        client._client.ping = AsyncMock(side_effect=ConnectionError("Connection refused"))

        assert await client.health_check() is False

    @pytest.mark.asyncio
    async def test_redis_client_not_connected(self):
        assert await RedisClient("redis://localhost:6379/0").health_check() is False
