"""Database migrations for the migration store.

This module handles schema initialization by executing the schema.sql file.
All DDL is stored in schema.sql for maintainability.
"""

from pathlib import Path
from typing import Dict
from typing import List

import asyncpg
from loguru import logger

REQUIRED_TABLES = ["clients", "users", "migration_log"]


def load_schema_sql(schema: str) -> str:
    """Read schema.sql and bind it to the configured schema name."""
    # Get path to schema.sql (same directory as this file)
    schema_path = Path(__file__).parent / "schema.sql"

    if not schema_path.exists():
        raise FileNotFoundError(
            f"Schema file not found: {schema_path}\n"
            "Expected location: src/ldap_migration/migration/db/schema.sql"
        )

    return schema_path.read_text(encoding="utf-8").replace("{schema}", schema)


async def run_migrations(conn: asyncpg.Connection, schema: str) -> None:
    """Run database migrations to create schema and tables.

    All SQL uses IF NOT EXISTS, so it's safe to run on every connect.

    Parameters
    ----------
    conn : asyncpg.Connection
        Database connection
    schema : str
        Target schema (already validated as a plain identifier)

    Raises
    ------
    FileNotFoundError
        If schema.sql file not found
    Exception
        If migration fails
    """
    schema_sql = load_schema_sql(schema)

    try:
        await conn.execute(schema_sql)
        logger.info("Migration store tables ready", schema=schema, tables=REQUIRED_TABLES)
    except Exception as e:
        logger.error(f"❌ Migration failed: {e}")
        raise

    await _run_incremental_migrations_impl(conn, schema)


async def _run_incremental_migrations_impl(conn: asyncpg.Connection, schema: str) -> None:
    """Bring migration_log tables created by earlier releases up to date."""
    for column, ddl in (
        ("error_log", "JSONB NOT NULL DEFAULT '[]'::jsonb"),
        ("dry_run", "BOOLEAN NOT NULL DEFAULT FALSE"),
    ):
        try:
            await conn.execute(f"ALTER TABLE {schema}.migration_log ADD COLUMN IF NOT EXISTS {column} {ddl}")
            logger.debug(f"Ensured {column} on {schema}.migration_log")
        except Exception as col_err:
            logger.warning(f"Column {column} on migration_log (may already exist): {col_err}")


async def verify_schema(conn: asyncpg.Connection, schema: str) -> Dict[str, object]:
    """Verify that all required tables exist.

    Returns
    -------
    dict
        {
            "tables": list[str],  # List of existing tables
            "missing_tables": list[str],
            "all_present": bool
        }
    """
    existing_tables = await conn.fetch(
        """
        SELECT table_name
        FROM information_schema.tables
        WHERE table_schema = $1
        ORDER BY table_name
        """,
        schema,
    )
    existing_table_names: List[str] = [row["table_name"] for row in existing_tables]
    missing = [t for t in REQUIRED_TABLES if t not in existing_table_names]

    return {
        "tables": existing_table_names,
        "missing_tables": missing,
        "all_present": not missing,
    }
