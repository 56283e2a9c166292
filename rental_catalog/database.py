"""
Database engine and schema management.
Builds the async SQLAlchemy engine behind the connection pool and owns the declarative schema.
"""

from sqlalchemy import DateTime, String, event, func, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import NullPool
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging
import uuid

from rental_catalog.config import Settings
from rental_catalog.pool import ConnectionPool

logger = logging.getLogger(__name__)


def new_id() -> str:
    """Mint an entity id before it is written."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""

    def __repr__(self) -> str:
        """String representation of the model."""
        return f"<{self.__class__.__name__}(id={getattr(self, 'id', None)})>"


class IdMixin:
    """Opaque string primary key minted by the catalog layer."""

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
    )


class TimestampMixin:
    """Creation and update timestamps, stamped by the layer with server defaults as fallback."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite only enforces ON DELETE CASCADE with this pragma set per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine.

    SQLAlchemy's own pooling is disabled; physical connections are owned by
    ``ConnectionPool``.
    """
    engine = create_async_engine(
        settings.database_url,
        echo=settings.debug,
        poolclass=NullPool,
    )
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


async def create_tables(engine: AsyncEngine) -> None:
    """
    Create all database tables.
    Safe to call multiple times.
    """
    # Register every model on the metadata before creating it.
    import rental_catalog.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")


async def drop_tables(engine: AsyncEngine, settings: Settings) -> None:
    """
    Drop all database tables.
    This should only be used in testing or development.
    """
    if settings.is_production:
        raise RuntimeError("Cannot drop tables in production environment")

    import rental_catalog.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        logger.info("Database tables dropped successfully")


async def get_database_info(pool: ConnectionPool, engine: Optional[AsyncEngine] = None) -> Dict[str, Any]:
    """
    Get database connection information for monitoring.
    Returns connection pool counters and, when reachable, the store version.
    """
    info: Dict[str, Any] = {"pool": pool.stats()}
    dialect = engine.dialect.name if engine is not None else None
    version_sql = "SELECT sqlite_version()" if dialect == "sqlite" else "SELECT version()"

    try:
        async with pool.connection() as conn:
            result = await conn.execute(text(version_sql))
            info["database_version"] = result.scalar()
            await conn.rollback()
    except Exception as e:
        logger.error(f"Failed to get database info: {e}")
        info["error"] = str(e)

    return info
