"""Directory access (LDAP)."""

from ldap_migration.directory.ldap_client import LdapDirectoryReader

__all__ = ["LdapDirectoryReader"]
