"""
Database engine and session management.
"""

from typing import Optional

from sqlalchemy import MetaData
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from natours.config.base import BaseAppSettings
from natours.logging import Logger, ensure_logger

# Module-level engine and session factory
engine: Optional[AsyncEngine] = None
SessionLocal: Optional[async_sessionmaker[AsyncSession]] = None


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by every model adapter; objects stay readable after commit."""
    return async_sessionmaker(bind=bind, expire_on_commit=False)


async def init_db(settings: BaseAppSettings, logger: Optional[Logger] = None) -> None:
    """
    Initialize the database engine and session factory.

    Args:
        settings: Application settings
        logger: Optional logger for database operations
    """
    global engine, SessionLocal

    log = ensure_logger(logger, __name__, settings)

    url = make_url(settings.DATABASE_URL)
    log.debug(f"Creating database engine for {url.render_as_string(hide_password=True)}")
    engine_kwargs = {"echo": settings.DB_ECHO}
    # An in-memory SQLite database only lives as long as its single connection
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        engine_kwargs["poolclass"] = StaticPool
        engine_kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_async_engine(settings.DATABASE_URL, **engine_kwargs)
    SessionLocal = build_session_factory(engine)
    log.debug("Database engine and session factory initialized")


async def create_all(target: MetaData, logger: Optional[Logger] = None) -> None:
    """
    Create all tables of ``target`` on the current engine.

    Raises:
        RuntimeError: If ``init_db`` has not run
    """
    log = ensure_logger(logger, __name__)
    if engine is None:
        raise RuntimeError("Database engine is not initialized")
    async with engine.begin() as connection:
        await connection.run_sync(target.create_all)
    log.debug(f"Created tables: {', '.join(sorted(target.tables))}")


async def shutdown_db(logger: Optional[Logger] = None) -> None:
    """
    Dispose of the database engine.

    Args:
        logger: Optional logger for database operations
    """
    global engine, SessionLocal

    log = ensure_logger(logger, __name__)

    if engine:
        log.debug("Disposing database engine")
        await engine.dispose()
        log.debug("Database engine disposed")
    engine = None
    SessionLocal = None
