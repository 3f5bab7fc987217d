"""Tests for Settings."""

import pydantic
import pytest

from ldap_migration.settings import Settings
from tests.fixtures.settings_fixtures import make_settings


class TestSettings:
    """Tests for loading and validating settings."""

    def test_defaults(self, monkeypatch):
        """Test defaults apply when nothing is configured."""
        for name in ("BATCH_SIZE", "MAX_CONCURRENT_USERS", "DRY_RUN", "CREDENTIAL_POLICY", "DB_SCHEMA"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.batch_size == 100
        assert settings.max_concurrent_users == 10
        assert settings.bcrypt_rounds == 12
        assert settings.dry_run is False
        assert settings.credential_policy == "random"
        assert settings.db_schema == "public"

    def test_environment(self, monkeypatch):
        """Test environment variables are read case-insensitively."""
        monkeypatch.setenv("batch_size", "25")
        monkeypatch.setenv("DRY_RUN", "true")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings(_env_file=None)

        assert settings.batch_size == 25
        assert settings.dry_run is True
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"batch_size": 0},
            {"max_concurrent_users": 0},
            {"bcrypt_rounds": 3},
            {"credential_policy": "reuse"},
            {"db_schema": "public; DROP TABLE users"},
        ],
    )
    def test_invalid_values(self, overrides):
        """Test out-of-range or unsafe values are rejected."""
        with pytest.raises(pydantic.ValidationError):
            make_settings(**overrides)

    def test_policy_normalized(self):
        """Test the credential policy is case-insensitive."""
        assert make_settings(credential_policy=" NONE ").credential_policy == "none"

    def test_schema_lower_cased(self):
        """Test a mixed-case schema name is folded the way PostgreSQL folds unquoted names."""
        assert make_settings(db_schema="Migration").db_schema == "migration"

    def test_missing_required_fields(self):
        """Test empty required values are reported by variable name."""
        settings = make_settings(ldap_bind_password="", db_host="")

        assert settings.missing_required_fields() == ["LDAP_BIND_PASSWORD", "DB_HOST"]
        assert settings.validate_required() is False

    def test_config_summary_hides_secrets(self, settings):
        """Test the logged configuration never carries passwords."""
        summary = settings.config_summary()

        assert settings.validate_required() is True
        assert "secret" not in str(summary)
        assert summary["migration"]["batch_size"] == 100
        assert summary["logging"]["file"] is None
