"""
Database lifecycle wiring for FastAPI applications.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncSession

import natours.db.engine as db_engine
from natours.config.base import BaseAppSettings
from natours.db.engine import create_all, init_db, shutdown_db
from natours.errors.exceptions import DBError
from natours.logging import Logger, ensure_logger


def setup_db(
    app: FastAPI,
    settings: BaseAppSettings,
    logger: Optional[Logger] = None,
    create_tables: Optional[MetaData] = None,
) -> None:
    """
    Configure database lifecycle for a FastAPI application.

    - On startup: initialize AsyncEngine and sessionmaker, optionally create tables
    - On shutdown: dispose engine

    The existing lifespan of the application is kept and runs inside the
    database lifecycle.
    """
    log = ensure_logger(logger, __name__, settings)
    wrapped = app.router.lifespan_context

    @asynccontextmanager
    async def lifespan(application):
        await init_db(settings, log)
        log.info("Database engine initialized")
        if create_tables is not None:
            await create_all(create_tables, log)
        try:
            async with wrapped(application) as state:
                yield state
        finally:
            await shutdown_db(log)
            log.info("Database engine disposed")

    app.router.lifespan_context = lifespan


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.
    """
    log = logging.getLogger(__name__)

    if db_engine.SessionLocal is None:
        raise DBError(message="Database not initialized")

    async with db_engine.SessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            log.error(f"Database session error: {e}")
            raise
