"""PostgreSQL persistence for the migration (asyncpg)."""

from ldap_migration.migration.db.pool import StorePool
from ldap_migration.migration.db.store import DryRunStore
from ldap_migration.migration.db.store import PostgresStore

__all__ = ["StorePool", "PostgresStore", "DryRunStore"]
