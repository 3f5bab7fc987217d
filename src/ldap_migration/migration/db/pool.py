"""
Migration Store Connection Pool

Manages the asyncpg connection pool for the target PostgreSQL database.
Automatically runs migrations on initialization.

Schema Evolution:
-----------------
When adding/removing/renaming tables in schema.sql:
1. Update the schema.sql file with new DDL
2. Update migrations.REQUIRED_TABLES with new table names
3. Add ALTER statements for existing deployments to _run_incremental_migrations_impl
"""

from typing import Dict
from typing import Optional

import asyncpg
from loguru import logger

from ldap_migration.migration.db.migrations import REQUIRED_TABLES
from ldap_migration.migration.db.migrations import run_migrations
from ldap_migration.migration.db.migrations import verify_schema


class StorePool:
    """Migration store connection pool manager."""

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        database: str,
        schema: str = "public",
        max_size: int = 10,
    ):
        """
        Initialize store pool.

        Args:
            host, port, user, password, database: PostgreSQL connection parameters
            schema: Schema holding the migration tables
            max_size: Maximum pool connections (should cover the user concurrency)
        """
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.schema = schema
        self.max_size = max_size
        self.pool: Optional[asyncpg.Pool] = None
        self._pool_initialized = False

    @classmethod
    def from_settings(cls, settings) -> "StorePool":
        return cls(
            host=settings.db_host,
            port=settings.db_port,
            user=settings.db_user,
            password=settings.db_password,
            database=settings.db_name,
            schema=settings.db_schema,
            max_size=settings.db_pool_max_size,
        )

    async def initialize(self) -> None:
        """
        Initialize connection pool and run migrations.

        Creates the pool, validates it and runs database migrations automatically.
        """
        if self._pool_initialized and self.pool is not None:
            logger.debug("Store pool already initialized")
            return

        try:
            logger.info("Initializing migration store pool", host=self.host, database=self.database)

            self.pool = await asyncpg.create_pool(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                database=self.database,
                min_size=1,
                max_size=self.max_size,
                command_timeout=60,  # Query timeout (60 seconds)
                timeout=15,  # Connection timeout (15 seconds)
            )

            # Validate pool connection
            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                if result != 1:
                    raise RuntimeError("Pool validation query failed")

                await run_migrations(conn, self.schema)

                verification = await verify_schema(conn, self.schema)
                if not verification["all_present"]:
                    raise RuntimeError(
                        f"Migration incomplete: missing tables {verification['missing_tables']} "
                        f"in schema {self.schema}"
                    )

            self._pool_initialized = True
            logger.success(f"All {len(REQUIRED_TABLES)} store tables verified", schema=self.schema)

        except Exception as e:
            logger.error(f"Failed to initialize store pool: {e}")
            if self.pool:
                await self.pool.close()
                self.pool = None
            raise

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if self.pool:
            logger.info("Closing migration store pool")
            await self.pool.close()
            self.pool = None
            self._pool_initialized = False
            logger.info("Store pool closed")

    def acquire(self):
        """
        Acquire a database connection from the pool.

        Returns async context manager that yields a connection.

        Usage:
            async with pool.acquire() as conn:
                result = await conn.fetchrow("SELECT * FROM ...")
        """
        if not self.pool:
            raise RuntimeError("Store pool not initialized - call initialize() first")
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
            logger.error(f"Store health check failed: {e}")
            return False

    async def get_table_counts(self) -> Dict[str, int]:
        """
        Get row counts for the migration tables.

        Returns:
            Dict mapping table names to row counts
        """
        counts = {}
        async with self.acquire() as conn:
            for table_name in REQUIRED_TABLES:
                counts[table_name] = await conn.fetchval(f"SELECT COUNT(*) FROM {self.schema}.{table_name}")
        return counts
