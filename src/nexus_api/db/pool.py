"""
Database Connection Pool

Manages the asyncpg connection pool for the project service database and applies
schema.sql on initialization.

Schema Evolution:
-----------------
schema.sql only contains idempotent DDL (CREATE ... IF NOT EXISTS). When adding a table:
1. Add the DDL to schema.sql
2. Add the table name to DatabasePool.EXPECTED_TABLES
Column changes on existing deployments need a manual ALTER until versioned migrations exist.
"""

from pathlib import Path
from typing import Optional

import asyncpg
from loguru import logger

SCHEMA_NAME = "nexus"
SCHEMA_PATH = Path(__file__).parent / "schema.sql"


class DatabasePool:
    """Project service database connection pool manager."""

    EXPECTED_TABLES = {
        "projects",
        "proposals",
        "notifications",
    }

    def __init__(
        self,
        connection_string: str,
        min_size: int = 2,
        max_size: int = 10,
        command_timeout: float = 30.0,
    ):
        """
        Initialize the pool manager (the pool itself is created by initialize()).

        Args:
            connection_string: PostgreSQL connection string
            min_size: Minimum pooled connections
            max_size: Maximum pooled connections
            command_timeout: Per-statement timeout in seconds
        """
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.pool: Optional[asyncpg.Pool] = None

    async def initialize(self) -> None:
        """Create the pool, validate it and apply the schema."""
        if self.pool is not None:
            logger.debug("Database pool already initialized")
            return

        try:
            logger.info("Initializing database pool", min_size=self.min_size, max_size=self.max_size)

            self.pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout,
                timeout=15,
            )

            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                if result != 1:
                    raise RuntimeError("Pool validation query failed")

            await self._run_migrations()

            logger.success("Database initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database pool: {e}", exc_info=True)
            if self.pool:
                await self.pool.close()
                self.pool = None
            raise

    async def _run_migrations(self) -> None:
        """Execute schema.sql and verify every expected table exists."""
        if not SCHEMA_PATH.exists():
            raise FileNotFoundError(f"schema.sql not found at {SCHEMA_PATH}")

        schema_sql = SCHEMA_PATH.read_text(encoding="utf-8")

        async with self.pool.acquire() as conn:
            await conn.execute(schema_sql)

            rows = await conn.fetch(
                """
                SELECT table_name
                FROM information_schema.tables
                WHERE table_schema = $1
                """,
                SCHEMA_NAME,
            )
            existing_tables = {row["table_name"] for row in rows}

        missing_tables = self.EXPECTED_TABLES - existing_tables
        if missing_tables:
            logger.error(f"Schema verification failed, missing tables: {missing_tables}")
            raise RuntimeError(f"Migration incomplete: missing tables {missing_tables}")

        logger.info(f"Schema verified: {len(self.EXPECTED_TABLES)} tables present in '{SCHEMA_NAME}'")

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if self.pool:
            logger.info("Closing database pool")
            await self.pool.close()
            self.pool = None
            logger.info("Database pool closed")

    def acquire(self):
        """
        Acquire a database connection from the pool.

        Usage:
            async with pool.acquire() as conn:
                row = await conn.fetchrow("SELECT ...")
        """
        if not self.pool:
            raise RuntimeError("Database pool not initialized - call initialize() first")
        return self.pool.acquire()

    async def health_check(self) -> bool:
        """Return True if a connection can be acquired and answers SELECT 1."""
        try:
            if not self.pool:
                return False

            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                return result == 1
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def get_table_counts(self) -> dict:
        """Get row counts for every expected table (used by the readiness probe)."""
        counts = {}
        async with self.acquire() as conn:
            for table_name in sorted(self.EXPECTED_TABLES):
                counts[table_name] = await conn.fetchval(f"SELECT COUNT(*) FROM {SCHEMA_NAME}.{table_name}")
        return counts
