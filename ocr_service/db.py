"""Async database connection pool.

`db_connection()` wraps each unit of work in a transaction. The OCR workers
open one per claim/save so that a crash mid-batch only loses the document
currently being processed.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import asyncpg

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None


class DatabaseConfig:
    """Builds connection strings based on detected environment."""

    @staticmethod
    def get_connection_string() -> str:
        # Priority 1: Explicit override
        if url := os.environ.get("DATABASE_URL"):
            return url

        # Priority 2: Cloud Run -> managed AlloyDB
        if os.environ.get("K_SERVICE") or os.environ.get("CLOUD_RUN_JOB"):
            host = os.environ.get("ALLOYDB_HOST")
            db = os.environ.get("ALLOYDB_DB", "documents")
            user = os.environ.get("ALLOYDB_USER", "documents")
            password = os.environ.get("ALLOYDB_PASSWORD", "")
            return f"postgresql://{user}:{password}@{host}/{db}"

        # Priority 3: Local dev
        sslmode = os.environ.get("DB_SSLMODE", "disable")
        return (
            f"postgresql://{os.environ.get('DB_USER', 'documents')}:"
            f"{os.environ.get('DB_PASSWORD', 'documents')}@"
            f"{os.environ.get('DB_HOST', 'localhost')}:"
            f"{os.environ.get('DB_PORT', '5432')}/"
            f"{os.environ.get('DB_NAME', 'documents')}?sslmode={sslmode}"
        )

    @staticmethod
    def get_migration_url() -> str:
        """Same resolution as get_connection_string(), with the psycopg2 driver Alembic runs on."""
        url = DatabaseConfig.get_connection_string()
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+psycopg2://", 1)
        return url


async def get_pool() -> asyncpg.Pool:
    """Return the singleton connection pool, creating it if necessary."""
    global _pool  # noqa: PLW0603
    if _pool is None:
        dsn = DatabaseConfig.get_connection_string()
        logger.info("Creating database pool (host hidden for security)")
        _pool = await asyncpg.create_pool(
            dsn=dsn,
            min_size=1,
            max_size=int(os.environ.get("DB_POOL_MAX", "5")),
            command_timeout=30,
        )
    return _pool


async def close_pool() -> None:
    """Gracefully close the connection pool."""
    global _pool  # noqa: PLW0603
    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


async def check_db_connection() -> bool:
    """Health check: returns True if the database is reachable."""
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        return True
    except Exception:
        logger.exception("Database health check failed")
        return False


@asynccontextmanager
async def db_connection() -> AsyncIterator[asyncpg.Connection]:
    """Acquire a pooled connection wrapped in a transaction."""
    pool = await get_pool()
    async with pool.acquire() as conn, conn.transaction():
        yield conn
