"""
Dependency Bootstrap
====================

Startup sequence for external dependencies:

1. Database (retried, see ``init_database``)
2. Cache (single probe by default, see ``init_cache``)
3. Schema migration

The resulting ``Dependencies`` is handed to the application before it
accepts traffic. Any failure is raised to the caller; handles that were
already opened are closed first.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable

from exchangeapp.config import CacheSettings, DatabaseSettings, Settings
from exchangeapp.infrastructure.cache import CacheHandle, init_cache
from exchangeapp.infrastructure.database import DatabaseHandle, create_tables, init_database
from exchangeapp.shared.infrastructure.logging import get_logger, log_duration

logger = get_logger(__name__)


@dataclass
class Dependencies:
    """The two process-wide handles, published once at startup."""
    database: DatabaseHandle
    cache: CacheHandle

    async def close(self) -> None:
        """Close the cache client, then dispose of the database engine."""
        try:
            await self.cache.close()
        finally:
            await self.database.close()


async def bootstrap_dependencies(
    settings: Settings,
    *,
    database_initializer: Callable[[DatabaseSettings], Awaitable[DatabaseHandle]] = init_database,
    cache_initializer: Callable[[CacheSettings], Awaitable[CacheHandle]] = init_cache,
    migrator: Callable[[DatabaseHandle], Awaitable[None]] = create_tables,
) -> Dependencies:
    """
    Bring up database and cache, then migrate the schema.

    Raises:
        DatabaseUnavailableError: Database retry budget spent
        CacheUnavailableError: Cache probe failed
        Exception: Whatever schema migration raised
    """
    logger.info("Initializing database")
    with log_duration(logger, "database_bootstrap"):
        database = await database_initializer(settings.database)

    logger.info("Initializing cache")
    try:
        cache = await cache_initializer(settings.cache)
    except Exception:
        await database.close()
        raise

    dependencies = Dependencies(database=database, cache=cache)

    logger.info("Migrating database schema")
    try:
        with log_duration(logger, "schema_migration"):
            await migrator(database)
    except Exception:
        await dependencies.close()
        raise

    return dependencies
