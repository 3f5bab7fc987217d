"""Fixtures for Settings built without the environment."""

import pytest

from ldap_migration.settings import Settings
from tests.consts import BASE_DN
from tests.consts import TEST_BCRYPT_ROUNDS


def make_settings(**overrides) -> Settings:
    """Settings that ignore the .env file; keyword arguments win over environment variables."""
    values = {
        "ldap_url": "ldap://ldap.test:389",
        "ldap_bind_dn": "cn=Directory Manager",
        "ldap_bind_password": "secret",
        "ldap_base_dn": BASE_DN,
        "db_host": "db.test",
        "db_user": "migrator",
        "db_password": "db-secret",
        "db_name": "usersdb",
        "bcrypt_rounds": TEST_BCRYPT_ROUNDS,
        "log_file_path": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    """Complete, valid settings."""
    return make_settings()
