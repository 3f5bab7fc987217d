"""
Migration Models Module

All Pydantic models for the migration:
- Directory models (read from LDAP)
- Store models (rows of clients, users, migration_log)
- Run models (per-entity outcomes, statistics, run result)
"""

# Directory Models
from ldap_migration.migration.models.directory import ClientGroup, UserRecord

# Store Models
from ldap_migration.migration.models.store import ClientRow, UserRow, RunSummary

# Run Models
from ldap_migration.migration.models.run import (
    UserOutcome,
    ClientOutcome,
    MigrationStats,
    RunResult,
)

__all__ = [
    # Directory models
    "ClientGroup",
    "UserRecord",
    # Store models
    "ClientRow",
    "UserRow",
    "RunSummary",
    # Run models
    "UserOutcome",
    "ClientOutcome",
    "MigrationStats",
    "RunResult",
]
