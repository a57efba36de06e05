# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Fakes for the database engine and the Redis client, so bootstrap code can
# be exercised without a live database or cache.
# =============================================================================

import os

# Keep the repository's config/config.yml out of the tests; individual
# tests point EXCHANGEAPP_CONFIG at their own files.
os.environ["EXCHANGEAPP_CONFIG"] = os.path.join(os.path.dirname(__file__), "missing-config.yml")

import pytest


class ConnectionRefused(OSError):
    """Stand-in for a driver-level connection error."""


# =============================================================================
# Sleep
# =============================================================================

class SleepRecorder:
    """Awaitable replacement for asyncio.sleep that only records its calls."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sleep():
    return SleepRecorder()


# =============================================================================
# Database engine
# =============================================================================

class FakeConnection:
    def __init__(self, engine):
        self.engine = engine

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def execute(self, statement):
        self.engine.executed.append(str(statement))
        if self.engine.ping_error is not None:
            raise self.engine.ping_error

    async def run_sync(self, fn):
        self.engine.run_sync_calls.append(fn)


class FakeEngine:
    def __init__(self, dsn, ping_error=None, **kwargs):
        self.dsn = dsn
        self.kwargs = kwargs
        self.ping_error = ping_error
        self.executed = []
        self.run_sync_calls = []
        self.disposed = False

    def connect(self):
        return FakeConnection(self)

    def begin(self):
        return FakeConnection(self)

    async def dispose(self):
        self.disposed = True


class EngineFactory:
    """
    Scripted replacement for create_async_engine.

    ``script`` lists the outcome per attempt: "open" fails while opening,
    "ping" opens but fails the probe, "ok" succeeds. Attempts past the end
    of the script repeat its last entry.
    """

    def __init__(self, *script):
        self.script = script or ("ok",)
        self.engines = []
        self.calls = []

    def __call__(self, dsn, **kwargs):
        self.calls.append((dsn, kwargs))
        attempt = len(self.calls)
        outcome = self.script[min(attempt, len(self.script)) - 1]
        if outcome == "open":
            raise ConnectionRefused(f"open failed on attempt {attempt}")
        ping_error = ConnectionRefused(f"ping failed on attempt {attempt}") if outcome == "ping" else None
        engine = FakeEngine(dsn, ping_error=ping_error, **kwargs)
        self.engines.append(engine)
        return engine


# =============================================================================
# Redis client
# =============================================================================

class FakeRedis:
    def __init__(self, ping_error=None, **kwargs):
        self.kwargs = kwargs
        self.ping_error = ping_error
        self.pings = 0
        self.closed = False

    async def ping(self):
        self.pings += 1
        if self.ping_error is not None:
            raise self.ping_error
        return True

    async def aclose(self):
        self.closed = True


class RedisFactory:
    """Scripted replacement for redis.asyncio.Redis; True means reachable."""

    def __init__(self, *reachable):
        self.reachable = reachable or (True,)
        self.clients = []

    def __call__(self, **kwargs):
        attempt = len(self.clients) + 1
        ok = self.reachable[min(attempt, len(self.reachable)) - 1]
        error = None if ok else ConnectionRefused(f"Error 111 connecting to redis:6379 (attempt {attempt})")
        client = FakeRedis(ping_error=error, **kwargs)
        self.clients.append(client)
        return client


@pytest.fixture
def engine_factory():
    return EngineFactory()


@pytest.fixture
def redis_factory():
    return RedisFactory()
