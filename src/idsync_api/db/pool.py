"""
Domain Database Connection Pool

Manages the asyncpg connection pool for the users and sessions tables.
Creates the idsync schema from schema.sql on first initialization.

Schema Evolution:
-----------------
When adding/removing/renaming tables in schema.sql:
1. Update the schema.sql file with new DDL
2. Update DomainDBPool.EXPECTED_TABLES with the new table names
3. For existing deployments, migrate manually or drop/recreate the schema:
   DROP SCHEMA idsync CASCADE;
   (then restart the app to auto-create)
"""

from pathlib import Path
from typing import Optional

import asyncpg
from loguru import logger

SCHEMA_NAME = "idsync"


class DomainDBPool:
    """Domain database connection pool manager."""

    EXPECTED_TABLES = {
        "users",
        "user_sessions",
    }

    def __init__(self, connection_string: str):
        """
        Initialize domain DB pool.

        Args:
            connection_string: PostgreSQL connection string
        """
        self.connection_string = connection_string
        self.pool: Optional[asyncpg.Pool] = None
        self._pool_initialized = False

    async def initialize(self) -> None:
        """Create the connection pool and run migrations."""
        if self._pool_initialized and self.pool is not None:
            logger.debug("Domain DB pool already initialized")
            return

        try:
            logger.info("Initializing domain database pool")

            self.pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=1,
                max_size=10,
                command_timeout=30,
                timeout=15,
            )

            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                if result != 1:
                    raise RuntimeError("Pool validation query failed")

            await self._run_migrations()

            self._pool_initialized = True
            logger.success("Domain database initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize domain DB pool: {e}", exc_info=True)
            if self.pool:
                await self.pool.close()
                self.pool = None
            raise

    async def _run_migrations(self) -> None:
        """
        Execute schema.sql unless every expected table already exists.

        Raises RuntimeError when the schema exists but only partially matches EXPECTED_TABLES.
        """
        async with self.pool.acquire() as conn:
            existing_tables = await self._existing_tables(conn)

            if existing_tables == self.EXPECTED_TABLES:
                logger.info(f"Schema {SCHEMA_NAME} and all {len(existing_tables)} expected tables exist")
                return

            if existing_tables:
                missing_tables = self.EXPECTED_TABLES - existing_tables
                extra_tables = existing_tables - self.EXPECTED_TABLES
                logger.error(
                    f"Schema mismatch detected. Missing: {missing_tables or 'None'}, Extra: {extra_tables or 'None'}. "
                    f"Manual migration required: DROP SCHEMA {SCHEMA_NAME} CASCADE;"
                )
                raise RuntimeError(
                    f"Schema mismatch: missing {missing_tables or 'None'}, extra {extra_tables or 'None'}"
                )

            logger.info(f"Schema {SCHEMA_NAME} not found - running migrations")

            schema_path = Path(__file__).parent / "schema.sql"
            if not schema_path.exists():
                raise FileNotFoundError(f"schema.sql not found at {schema_path}")

            await conn.execute(schema_path.read_text())

            existing_tables = await self._existing_tables(conn)
            if existing_tables != self.EXPECTED_TABLES:
                raise RuntimeError(
                    f"Migration incomplete: expected {sorted(self.EXPECTED_TABLES)}, found {sorted(existing_tables)}"
                )

            logger.success(f"All {len(self.EXPECTED_TABLES)} tables verified successfully")

    @staticmethod
    async def _existing_tables(conn: asyncpg.Connection) -> set:
        rows = await conn.fetch(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = $1
            ORDER BY table_name
            """,
            SCHEMA_NAME,
        )
        return {row["table_name"] for row in rows}

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if self.pool:
            logger.info("Closing domain database pool")
            await self.pool.close()
            self.pool = None
            self._pool_initialized = False

    def acquire(self):
        """
        Acquire a database connection from the pool.

        Usage:
            async with pool.acquire() as conn:
                row = await conn.fetchrow("SELECT ...")
        """
        if not self.pool:
            raise RuntimeError("Domain DB pool not initialized - call initialize() first")
        return self.pool.acquire()

    async def health_check(self) -> bool:
        """
        Check if database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise
        """
        try:
            if not self.pool:
                return False

            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                return result == 1
        except Exception as e:
            logger.error(f"Domain DB health check failed: {e}")
            return False
