"""
Database Initialization Module

Creates async SQLAlchemy engines with database-specific tuning and manages
the optional module-level engine used by applications that want a single
shared handle for their repositories.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

from sqlalchemy import MetaData, event as sa_event, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from repokit.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def detect_database_type(database_url: str) -> str:
    """
    Detect database type from connection URL.

    Args:
        database_url: Database connection string

    Returns:
        Database type ('postgresql' or 'sqlite')

    Raises:
        ValueError: For unsupported database schemes
    """
    parsed = urlparse(database_url)
    scheme = parsed.scheme.lower()

    if scheme.startswith('postgresql'):
        return 'postgresql'
    elif scheme.startswith('sqlite'):
        return 'sqlite'
    else:
        raise ValueError(f"Unsupported database scheme: {scheme}")


def to_async_url(database_url: str) -> str:
    """Rewrite a plain database URL to use the matching async driver."""
    db_type = detect_database_type(database_url)

    if db_type == 'postgresql':
        if database_url.startswith('postgresql://'):
            return database_url.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return database_url

    if database_url.startswith('sqlite://'):
        return database_url.replace('sqlite://', 'sqlite+aiosqlite://', 1)
    return database_url


def create_async_database_engine(database_url: str, settings: Optional[Settings] = None) -> AsyncEngine:
    """
    Create async database engine with type-specific optimizations.

    Args:
        database_url: Database connection string
        settings: Settings instance (will get default if None)

    Returns:
        SQLAlchemy async engine configured for the database type
    """
    if settings is None:
        settings = get_settings()

    db_type = detect_database_type(database_url)
    database_url = to_async_url(database_url)

    if db_type == 'postgresql':
        return create_async_engine(
            database_url,
            echo=settings.sql_echo,
            pool_size=settings.postgres_pool_size,
            max_overflow=settings.postgres_max_overflow,
            pool_timeout=settings.postgres_pool_timeout,
            pool_recycle=settings.postgres_pool_recycle,
            pool_pre_ping=settings.postgres_pool_pre_ping,
            connect_args={
                "server_settings": {"application_name": "repokit"}
            }
        )

    connect_args = {"check_same_thread": False}

    # In-memory databases live and die with their connection, so keep exactly one
    if ':memory:' in database_url:
        return create_async_engine(
            database_url,
            echo=settings.sql_echo,
            poolclass=StaticPool,
            connect_args=connect_args
        )

    engine = create_async_engine(
        database_url,
        echo=settings.sql_echo,
        connect_args=connect_args
    )

    busy_timeout = settings.sqlite_busy_timeout_ms

    @sa_event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout)}")
        cursor.close()

    return engine


async def create_database_tables(engine: AsyncEngine, metadata: Optional[MetaData] = None) -> None:
    """
    Create all tables registered on ``metadata``.

    Args:
        engine: Async engine to create the tables with
        metadata: Table metadata, defaults to ``SQLModel.metadata``
    """
    if metadata is None:
        metadata = SQLModel.metadata

    try:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info(f"Created {len(metadata.tables)} table(s)")
    except Exception as e:
        logger.error(f"Failed to create database tables: {str(e)}")
        raise


async def check_database_connection(engine: AsyncEngine) -> bool:
    """
    Test database connectivity.

    Args:
        engine: Async engine to test

    Returns:
        True if connection successful, False otherwise
    """
    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception as e:
        logger.debug(f"Database connection test failed: {str(e)}")
        return False


# Shared async engine for applications that keep one handle per process
_async_engine: Optional[AsyncEngine] = None


def initialize_async_database(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Initialize the shared async database engine.

    Args:
        database_url: Optional database URL, uses settings if not provided

    Returns:
        The shared engine
    """
    global _async_engine

    if database_url is None:
        database_url = get_settings().database_url

    _async_engine = create_async_database_engine(database_url)

    logger.info(f"Async database engine initialized for: {database_url.split('/')[-1]}")
    return _async_engine


def get_async_engine() -> AsyncEngine:
    """
    Get the shared async engine.

    Raises:
        RuntimeError: If async database not initialized
    """
    if _async_engine is None:
        raise RuntimeError("Async database not initialized. Call initialize_async_database() first.")
    return _async_engine


async def dispose_async_database() -> None:
    """Dispose the shared async engine and cleanup resources."""
    global _async_engine

    if _async_engine:
        await _async_engine.dispose()
        logger.info("Async database engine disposed")

    _async_engine = None
