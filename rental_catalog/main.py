"""
Catalog entry point.
Builds the catalog layer once per process and manages its startup and shutdown.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from rental_catalog.config import Settings, get_settings
from rental_catalog.database import create_engine, create_tables, get_database_info
from rental_catalog.executor import QueryExecutor
from rental_catalog.pool import ConnectionPool
from rental_catalog.repositories import (
    FavoriteRepository,
    FeatureRepository,
    ImageRepository,
    PropertyRepository,
    UserRepository,
)
from rental_catalog.services import CatalogService, ErrorHandlerService
from rental_catalog.utils.pool_monitor import PoolMonitor

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class Catalog:
    """
    The catalog layer as one object: engine, pool, executor, repositories and services.

    Construct it once at process start and share it; it is safe for concurrent
    use from tasks on one event loop.
    """

    def __init__(self, settings: Settings, engine: AsyncEngine, pool: ConnectionPool):
        self.settings = settings
        self.engine = engine
        self.pool = pool
        self.executor = QueryExecutor.from_settings(pool, settings)

        self.users = UserRepository(self.executor)
        self.properties = PropertyRepository(self.executor)
        self.images = ImageRepository(self.executor)
        self.features = FeatureRepository(self.executor)
        self.favorites = FavoriteRepository(self.executor)

        self.service = CatalogService(
            self.executor,
            placeholder_image_url=settings.placeholder_image_url,
            featured_limit=settings.featured_limit,
            dashboard_recent_limit=settings.dashboard_recent_limit,
        )
        self.errors = ErrorHandlerService()
        self.monitor = PoolMonitor(
            pool,
            interval=settings.pool_monitor_interval,
            warn_threshold=settings.monitor_warn_threshold,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Catalog":
        settings = settings or get_settings()
        engine = create_engine(settings)
        return cls(settings, engine, ConnectionPool.from_engine(engine, settings))

    async def start(self, create_schema: bool = False) -> None:
        """
        Prepare the catalog for use.

        Args:
            create_schema: Create missing tables before serving
        """
        logger.info(f"Starting {self.settings.app_name} v{self.settings.app_version}")
        logger.info(f"Environment: {self.settings.environment}")

        if create_schema:
            await create_tables(self.engine)
        if self.settings.monitor_enabled:
            self.monitor.start()

    async def close(self) -> None:
        """Stop diagnostics, drain the pool and dispose of the engine."""
        logger.info("Shutting down catalog")
        await self.monitor.stop()
        await self.pool.close(drain_timeout=self.settings.pool_drain_timeout)
        await self.engine.dispose()

    async def info(self) -> Dict[str, Any]:
        return await get_database_info(self.pool, self.engine)


@asynccontextmanager
async def catalog_lifespan(
    settings: Optional[Settings] = None,
    create_schema: bool = False,
) -> AsyncIterator[Catalog]:
    """
    Catalog lifespan manager.
    Handles startup and shutdown around the block.
    """
    catalog = Catalog.from_settings(settings)
    await catalog.start(create_schema=create_schema)
    try:
        yield catalog
    finally:
        await catalog.close()


async def check_database() -> Dict[str, Any]:
    """Connect with the environment's settings and report store and pool information."""
    async with catalog_lifespan() as catalog:
        info = await catalog.info()
    if "error" in info:
        logger.error(f"Database check failed: {info['error']}")
    else:
        logger.info(f"Connected to {info['database_version']}")
    return info


if __name__ == "__main__":
    asyncio.run(check_database())
