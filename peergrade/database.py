"""
peergrade/database.py
Database configuration and transaction boundary
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from peergrade.errors import APIError, log_internal
from peergrade.orm.base import Base
import peergrade.orm  # ensures all models are registered

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Owns the async engine and session factory for one application instance.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url

        if "sqlite" in database_url.lower():
            engine_args = {"connect_args": {"timeout": 30.0}}
            if ":memory:" in database_url or database_url.rstrip("/").endswith("sqlite+aiosqlite:"):
                # in-memory databases need one shared connection
                engine_args["poolclass"] = StaticPool
                engine_args["connect_args"]["check_same_thread"] = False
            self.engine = create_async_engine(database_url, echo=echo, future=True, **engine_args)
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        else:
            self.engine = create_async_engine(
                database_url,
                echo=echo,
                future=True,
                pool_pre_ping=True,
                pool_size=20,
                max_overflow=30,
                pool_timeout=30,
                pool_recycle=3600,
            )

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def init_db(self):
        """Create all tables. Idempotent: safe to run multiple times."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ready")

    async def drop_all(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def close_db(self):
        await self.engine.dispose()
        logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_factory() as session:
            yield session


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session"""
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def atomic(db: AsyncSession, context: str = ""):
    """
    Transaction boundary for one logical operation.

    Commits when the block finishes, rolls back on any exception. Domain
    errors pass through unchanged; storage failures are logged and replaced
    by a generic InternalError so no storage detail reaches the caller.
    """
    try:
        yield db
        await db.commit()
    except APIError:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        raise log_internal(e, context) from e
    except BaseException:
        await db.rollback()
        raise
