"""
Database configuration and connection management.

Production runs on PostgreSQL (psycopg for the sync engine used by schema
tooling, asyncpg for request handling). TESTING=true switches both engines to
a file-based SQLite database.
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import create_engine, event, text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, QueuePool

from ..models.database import Base


logger = logging.getLogger(__name__)

SLOW_QUERY_SECONDS = 0.1


class DatabaseConfig:
    """Database configuration management."""

    def __init__(self):
        self.testing = os.getenv("TESTING", "false").lower() == "true"
        self.database_url = self._get_database_url()
        self.async_database_url = self._get_async_database_url()
        self.echo = os.getenv("DATABASE_ECHO", "false").lower() == "true"
        self.pool_size = int(os.getenv("DATABASE_POOL_SIZE", "10"))
        self.max_overflow = int(os.getenv("DATABASE_MAX_OVERFLOW", "20"))
        self.pool_timeout = int(os.getenv("DATABASE_POOL_TIMEOUT", "30"))
        self.pool_recycle = int(os.getenv("DATABASE_POOL_RECYCLE", "3600"))

    def _get_database_url(self) -> str:
        """Synchronous URL (schema creation, migrations, seeding)."""
        if self.testing:
            return "sqlite:///./test.db"
        url = os.getenv("DATABASE_URL")
        if url:
            return url
        host = os.getenv("DB_HOST", "localhost")
        port = os.getenv("DB_PORT", "5432")
        database = os.getenv("DB_NAME", "oilshop_admin")
        username = os.getenv("DB_USER", "postgres")
        password = os.getenv("DB_PASSWORD", "postgres")
        return f"postgresql+psycopg://{username}:{password}@{host}:{port}/{database}"

    def _get_async_database_url(self) -> str:
        """Asynchronous URL used by the request path."""
        if self.testing:
            return "sqlite+aiosqlite:///./test.db"
        url = os.getenv("ASYNC_DATABASE_URL")
        if url:
            return url
        sync_url = self._get_database_url()
        for prefix in ("postgresql+psycopg://", "postgresql://"):
            if sync_url.startswith(prefix):
                return sync_url.replace(prefix, "postgresql+asyncpg://", 1)
        return sync_url


db_config = DatabaseConfig()

if db_config.database_url.startswith("sqlite"):
    engine = create_engine(
        db_config.database_url,
        echo=db_config.echo,
        connect_args={"check_same_thread": False}
    )
else:
    engine = create_engine(
        db_config.database_url,
        echo=db_config.echo,
        poolclass=QueuePool,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_timeout=db_config.pool_timeout,
        pool_recycle=db_config.pool_recycle,
        connect_args={
            "application_name": "oilshop_admin",
            "options": "-c timezone=UTC"
        }
    )

if db_config.async_database_url.startswith("sqlite+aiosqlite"):
    # Each pytest-asyncio test runs its own loop; pooled aiosqlite connections
    # must not outlive it.
    async_engine = create_async_engine(
        db_config.async_database_url,
        echo=db_config.echo,
        poolclass=NullPool,
        connect_args={"check_same_thread": False}
    )
else:
    async_engine = create_async_engine(
        db_config.async_database_url,
        echo=db_config.echo,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_recycle=db_config.pool_recycle,
    )

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)


@event.listens_for(engine, "before_cursor_execute")
def receive_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    context._query_start_time = time.time()


@event.listens_for(engine, "after_cursor_execute")
def receive_after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Log slow queries for performance monitoring."""
    total = time.time() - context._query_start_time
    if total > SLOW_QUERY_SECONDS:
        logger.warning("Slow query detected: %.3fs - %s...",
                       total, statement[:100])


def create_database_tables():
    """Create all database tables (tests and local bootstrap only)."""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error("Failed to create database tables: %s", e)
        raise


def drop_database_tables():
    """Drop all database tables."""
    try:
        Base.metadata.drop_all(bind=engine)
        logger.info("Database tables dropped successfully")
    except Exception as e:
        logger.error("Failed to drop database tables: %s", e)
        raise


@asynccontextmanager
async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get async database session context manager.

    Usage:
        async with get_async_db() as db:
            # Use async db session
            pass
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_async_db_dependency():
    """
    FastAPI dependency for async database session.

    Usage in FastAPI endpoints:
        @router.get("/orders")
        async def list_orders(db: AsyncSession = Depends(get_async_db_dependency)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def check_async_database_connection() -> bool:
    """Check if async database connection is working."""
    try:
        async with get_async_db() as db:
            await db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("Async database connection check failed: %s", e)
        return False


def get_database_info() -> dict:
    """Get database connection information for monitoring."""
    return {
        # Hide credentials
        "database_url": db_config.async_database_url.split("@")[-1],
        "pool_class": type(async_engine.pool).__name__,
        "echo": db_config.echo,
    }


async def async_database_health_check() -> dict:
    """Database health summary for the readiness endpoints."""
    connection_ok = await check_async_database_connection()
    return {
        "status": "healthy" if connection_ok else "unhealthy",
        "connection": connection_ok,
        "database_info": get_database_info()
    }
