"""PostgreSQL store with async SQLAlchemy.

Handles:
- Database session management
- Connection pooling
- Code normalization functions (`norm_upc`, `norm_sku`) on engines that lack them

On PostgreSQL the normalization functions are created by the schema migration.
SQLite (local runs, tests) gets the same transforms registered per connection.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import event, pool, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.services.keys import norm_sku, norm_upc
from app.settings import get_settings


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


# Engine and session factory (initialized on startup)
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _register_sqlite_functions(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record) -> None:
        dbapi_connection.create_function("norm_upc", 1, norm_upc, deterministic=True)
        dbapi_connection.create_function("norm_sku", 1, norm_sku, deterministic=True)


async def init_db(database_url: str | None = None) -> None:
    """Initialize database connection pool.

    Args:
        database_url: Override for settings.database_url (scripts, tests).
    """
    global _engine, _session_factory

    settings = get_settings()
    url = database_url or settings.async_database_url

    if make_url(url).get_backend_name() == "sqlite":
        _engine = create_async_engine(url, echo=settings.debug, poolclass=pool.NullPool)
        _register_sqlite_functions(_engine)
    else:
        _engine = create_async_engine(
            url,
            echo=settings.debug,
            connect_args=settings.asyncpg_connect_args,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
        )
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def close_db() -> None:
    """Close database connection pool."""
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None


async def ping_db() -> None:
    """Run a trivial query to validate connectivity."""
    async with get_session() as session:
        await session.execute(text("select 1"))


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session context manager.

    Usage:
        async with get_session() as session:
            result = await session.execute(query)
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create all tables (for development/testing only)."""
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
