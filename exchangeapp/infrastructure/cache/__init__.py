"""
Cache Infrastructure
====================

Redis client bootstrap.

``init_cache`` opens a client and sends ``PING``. It shares the retry
machinery with the database bootstrapper, but the default budget is a
single attempt: an unreachable cache fails startup straight away.
"""

from dataclasses import dataclass
from typing import Callable, Optional

import redis.asyncio as aioredis
from fastapi import Request
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff

from exchangeapp.config import CacheSettings
from exchangeapp.core import CacheUnavailableError
from exchangeapp.infrastructure.retry import RetryExhausted, RetryPolicy, Sleep, retry_with_backoff
from exchangeapp.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

ClientFactory = Callable[..., aioredis.Redis]


@dataclass
class CacheHandle:
    """Live Redis client."""
    client: aioredis.Redis
    addr: str

    async def ping(self) -> None:
        await self.client.ping()

    async def close(self) -> None:
        await self.client.aclose()


async def init_cache(
    settings: CacheSettings,
    *,
    client_factory: ClientFactory = aioredis.Redis,
    sleep: Optional[Sleep] = None,
) -> CacheHandle:
    """
    Connect to Redis and verify it answers.

    Args:
        settings: Cache section of the application settings
        client_factory: Client constructor, ``redis.asyncio.Redis`` by default
        sleep: Awaitable sleep between attempts, ``asyncio.sleep`` by default

    Returns:
        CacheHandle: Handle wrapping the verified client

    Raises:
        CacheUnavailableError: If no probe succeeded.
    """

    async def attempt(number: int) -> aioredis.Redis:
        client = client_factory(
            host=settings.host,
            port=settings.port,
            password=settings.password,
            db=settings.db,
            # max_attempts is the only retry budget; no client-side reconnects
            retry=Retry(NoBackoff(), 0),
        )
        try:
            await client.ping()
        except Exception:
            await client.aclose()
            raise
        return client

    policy = RetryPolicy(
        max_attempts=settings.max_attempts,
        interval_seconds=settings.retry_interval_seconds,
    )
    try:
        client = await retry_with_backoff(attempt, policy, description="cache", sleep=sleep)
    except RetryExhausted as e:
        raise CacheUnavailableError(e.attempts, e.last_error) from e.last_error

    logger.info("Cache connection established", extra={"addr": settings.addr, "db": settings.db})
    return CacheHandle(client=client, addr=settings.addr)


def get_cache(request: Request) -> aioredis.Redis:
    """FastAPI dependency returning the shared Redis client."""
    handle: CacheHandle = request.app.state.dependencies.cache
    return handle.client
