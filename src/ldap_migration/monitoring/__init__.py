"""Monitoring package for logging and run reporting."""

from ldap_migration.monitoring.logger import configure_logger
from ldap_migration.monitoring.reporter import RunReporter

__all__ = [
    "configure_logger",
    "RunReporter",
]
