"""
Database Infrastructure
=======================

Bootstraps the relational store connection, manages session lifecycle and
runs schema migration.

Uses SQLAlchemy 2.0 async engines. ``init_database`` keeps trying to open
and ping the database until it answers or the retry budget is spent, and
returns an explicit ``DatabaseHandle`` instead of publishing a global.
"""

from dataclasses import dataclass
from typing import Any, AsyncGenerator, Callable, Dict, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from exchangeapp.config import DatabaseSettings
from exchangeapp.core import DatabaseUnavailableError
from exchangeapp.infrastructure.retry import RetryExhausted, RetryPolicy, Sleep, retry_with_backoff
from exchangeapp.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

EngineFactory = Callable[..., AsyncEngine]


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    SQLAlchemy 2.0 style using DeclarativeBase.
    """
    pass


@dataclass(frozen=True)
class PoolLimits:
    """
    Connection pool limits derived from the idle/open connection settings.

    ``max_idle_conns`` becomes the number of pooled connections kept around,
    the gap up to ``max_open_conns`` becomes overflow. An open limit of 0
    means unlimited overflow; an idle limit of 0 disables pooling.

    With pooling disabled (``NullPool``) SQLAlchemy has no way to cap open
    connections, so ``max_open_conns`` is not enforced in that case and
    only the database server's own connection limit applies.
    """
    pool_size: int
    max_overflow: int
    recycle_seconds: int

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> "PoolLimits":
        idle = settings.max_idle_conns
        max_open = settings.max_open_conns
        if max_open > 0:
            # idle connections can never exceed the open limit
            idle = min(idle, max_open)
            overflow = max_open - idle
        else:
            overflow = -1
        return cls(
            pool_size=idle,
            max_overflow=overflow,
            recycle_seconds=settings.conn_max_lifetime_seconds,
        )

    def engine_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``create_async_engine``."""
        if self.pool_size == 0:
            return {"poolclass": NullPool}
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_recycle": self.recycle_seconds,
        }


@dataclass
class DatabaseHandle:
    """Live database engine plus its session factory."""
    engine: AsyncEngine
    session_maker: async_sessionmaker[AsyncSession]
    pool_limits: PoolLimits

    async def ping(self) -> None:
        await ping_engine(self.engine)

    async def close(self) -> None:
        """Dispose of pooled connections."""
        await self.engine.dispose()


def normalize_dsn(dsn: str) -> str:
    """asyncpg spells the libpq ``sslmode`` parameter as ``ssl``."""
    if dsn.startswith("postgresql+asyncpg://"):
        return dsn.replace("sslmode=", "ssl=")
    return dsn


async def ping_engine(engine: AsyncEngine) -> None:
    """Round-trip a trivial query; raises if the database is unreachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def init_database(
    settings: DatabaseSettings,
    *,
    engine_factory: EngineFactory = create_async_engine,
    sleep: Optional[Sleep] = None,
) -> DatabaseHandle:
    """
    Open a pooled, health-checked connection to the database.

    Each attempt opens an engine for the DSN and pings it. A failure at
    either step disposes of the engine and waits a constant interval
    before the next attempt.

    Args:
        settings: Database section of the application settings
        engine_factory: Engine constructor, ``create_async_engine`` by default
        sleep: Awaitable sleep between attempts, ``asyncio.sleep`` by default

    Returns:
        DatabaseHandle: Handle with pool limits applied

    Raises:
        DatabaseUnavailableError: If no attempt succeeded. Carries the
            error of the last attempt.
    """
    limits = PoolLimits.from_settings(settings)
    dsn = normalize_dsn(settings.dsn)

    async def attempt(number: int) -> AsyncEngine:
        engine = engine_factory(dsn, echo=settings.echo, **limits.engine_kwargs())
        try:
            await ping_engine(engine)
        except Exception:
            await engine.dispose()
            raise
        return engine

    policy = RetryPolicy(
        max_attempts=settings.max_attempts,
        interval_seconds=settings.retry_interval_seconds,
    )
    try:
        engine = await retry_with_backoff(attempt, policy, description="database", sleep=sleep)
    except RetryExhausted as e:
        raise DatabaseUnavailableError(e.attempts, e.last_error) from e.last_error

    session_maker = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Prevent lazy loading after commit
        autoflush=False,
    )

    logger.info(
        "Database connection established",
        extra={
            "pool_size": limits.pool_size,
            "max_overflow": limits.max_overflow,
            "pool_recycle_seconds": limits.recycle_seconds,
        },
    )
    return DatabaseHandle(engine=engine, session_maker=session_maker, pool_limits=limits)


async def create_tables(handle: DatabaseHandle) -> None:
    """
    Create all tables registered on ``Base.metadata``.

    Idempotent: existing tables are left alone.
    """
    # Registers the models on Base.metadata
    from exchangeapp.exchange.infrastructure import models  # noqa: F401

    async with handle.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a database session for FastAPI's ``Depends()``.

    The session commits when the request handler returns and rolls back
    if it raises.
    """
    handle: DatabaseHandle = request.app.state.dependencies.database

    async with handle.session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
