"""
Migration Orchestrator Module

Coordinates one directory-to-store migration run.
"""

from ldap_migration.migration.orchestrator.migration import MigrationOrchestrator
from ldap_migration.migration.orchestrator.migration import validate_setup

__all__ = [
    "MigrationOrchestrator",
    "validate_setup",
]
