"""Credential conversion for migrated users."""

from ldap_migration.credentials.hash_converter import HashConverter
from ldap_migration.credentials.hash_converter import detect_format
from ldap_migration.credentials.hash_converter import extract_payload
from ldap_migration.credentials.hash_converter import generate_secret
from ldap_migration.credentials.hash_converter import hash_info
from ldap_migration.credentials.hash_converter import hash_password
from ldap_migration.credentials.hash_converter import is_ldap_hash
from ldap_migration.credentials.hash_converter import verify_password

__all__ = [
    "HashConverter",
    "detect_format",
    "extract_payload",
    "generate_secret",
    "hash_info",
    "hash_password",
    "is_ldap_hash",
    "verify_password",
]
