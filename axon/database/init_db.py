"""
Engine and session factory lifecycle.

One async engine per process, created at application startup and disposed
at shutdown. SQLite URLs get connection hooks enabling foreign keys and
explicit BEGIN so nested savepoints behave as on PostgreSQL.
"""

from typing import Optional
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession
from sqlalchemy.orm import sessionmaker

from axon.common.logger import app_logger
from axon.database.base import metadata

# Import models so their tables are registered on the metadata
from axon.database import models  # noqa: F401

logger = app_logger.getChild("database.init_db")

# Set by initialize_database, cleared by close_database
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> AsyncEngine:
    """The engine created by ``initialize_database``."""
    if _engine is None:
        raise RuntimeError("No database engine; initialize_database() has not run")
    return _engine


def get_session_factory() -> sessionmaker:
    """Factory for ``AsyncSession`` objects bound to the engine."""
    if _session_factory is None:
        raise RuntimeError("No database engine; initialize_database() has not run")
    return _session_factory


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside the transaction
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_transaction(conn) -> None:
    conn.exec_driver_sql("BEGIN")


async def initialize_database(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
) -> AsyncEngine:
    """
    Create the engine and session factory and check connectivity.

    Args:
        database_url: SQLAlchemy async URL (sqlite+aiosqlite or postgresql+asyncpg)
        echo: Log emitted SQL
        pool_size: Persistent connections kept by the PostgreSQL pool
        max_overflow: Extra connections allowed under load
        pool_timeout: Seconds to wait for a free connection

    Returns:
        The new engine
    """
    global _engine, _session_factory

    kwargs = {"echo": echo, "future": True}
    if database_url.startswith("postgresql"):
        # SQLite drivers use their own pool and reject these options
        kwargs.update({
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
            "pool_pre_ping": True,
        })

    try:
        logger.info(f"Connecting to {database_url.split('://')[0]} database")

        _engine = create_async_engine(database_url, **kwargs)

        if database_url.startswith("sqlite"):
            event.listen(_engine.sync_engine, "connect", _configure_sqlite_connection)
            event.listen(_engine.sync_engine, "begin", _begin_sqlite_transaction)

        _session_factory = sessionmaker(
            _engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        # Fail startup early when the database is unreachable
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

        logger.info("Database ready")
        return _engine

    except Exception as e:
        logger.error(f"Database unavailable: {e}")
        raise


async def create_schema(engine: Optional[AsyncEngine] = None) -> None:
    """Create all tables that do not exist yet."""
    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Database schema created")


async def close_database() -> None:
    """Dispose of the engine and its pooled connections."""
    global _engine, _session_factory

    if _engine:
        try:
            await _engine.dispose()
            logger.info("Database connections closed")
        except Exception as e:
            logger.error(f"Failed to dispose database engine: {e}")
            raise
        finally:
            _engine = None
            _session_factory = None
