# =============================================================================
# tests/test_cache.py - Cache Bootstrap Tests
# =============================================================================

import pytest
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff

from exchangeapp.config import CacheSettings
from exchangeapp.core import CacheUnavailableError
from exchangeapp.infrastructure.cache import CacheHandle, init_cache
from tests.conftest import ConnectionRefused, RedisFactory


class TestInitCache:
    """Test the cache bootstrapper."""

    @pytest.mark.asyncio
    async def test_reachable_publishes_after_one_probe(self, sleep):
        factory = RedisFactory(True)

        handle = await init_cache(CacheSettings(), client_factory=factory, sleep=sleep)

        assert isinstance(handle, CacheHandle)
        assert handle.client is factory.clients[0]
        assert handle.client.pings == 1
        assert handle.addr == "redis:6379"
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_default_endpoint(self, sleep):
        factory = RedisFactory(True)

        await init_cache(CacheSettings(), client_factory=factory, sleep=sleep)

        kwargs = dict(factory.clients[0].kwargs)
        kwargs.pop("retry")
        assert kwargs == {
            "host": "redis",
            "port": 6379,
            "password": None,
            "db": 0,
        }

    @pytest.mark.asyncio
    async def test_unreachable_fails_after_one_probe(self, sleep):
        factory = RedisFactory(False)

        with pytest.raises(CacheUnavailableError) as exc_info:
            await init_cache(CacheSettings(), client_factory=factory, sleep=sleep)

        assert len(factory.clients) == 1
        assert factory.clients[0].pings == 1
        assert factory.clients[0].closed
        assert sleep.calls == []
        assert exc_info.value.attempts == 1
        assert isinstance(exc_info.value.last_error, ConnectionRefused)
        assert exc_info.value.service_name == "Cache"

    @pytest.mark.asyncio
    async def test_configured_retries(self, sleep):
        settings = CacheSettings(addr="cache.internal:6380", password="hunter2", db=2, max_attempts=3, retry_interval_seconds=1.5)
        factory = RedisFactory(False, False, True)

        handle = await init_cache(settings, client_factory=factory, sleep=sleep)

        assert len(factory.clients) == 3
        assert sleep.calls == [1.5, 1.5]
        assert handle.client is factory.clients[2]
        kwargs = dict(factory.clients[2].kwargs)
        kwargs.pop("retry")
        assert kwargs == {
            "host": "cache.internal",
            "port": 6380,
            "password": "hunter2",
            "db": 2,
        }

    @pytest.mark.asyncio
    async def test_handle_close(self, sleep):
        handle = await init_cache(CacheSettings(), client_factory=RedisFactory(True), sleep=sleep)

        await handle.close()

        assert handle.client.closed

    @pytest.mark.asyncio
    async def test_client_side_reconnects_disabled(self, sleep):
        factory = RedisFactory(False)

        with pytest.raises(CacheUnavailableError):
            await init_cache(CacheSettings(), client_factory=factory, sleep=sleep)

        retry = factory.clients[0].kwargs["retry"]
        assert isinstance(retry, Retry)
        assert retry._retries == 0
        assert isinstance(retry._backoff, NoBackoff)
