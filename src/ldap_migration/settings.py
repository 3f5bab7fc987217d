"""Settings for the LDAP to PostgreSQL migration."""

import re
from typing import Any
from typing import Dict
from typing import List

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Settings(BaseSettings):
    """
    Settings for the migration run.

    [pydantic.BaseSettings](https://docs.pydantic.dev/latest/concepts/pydantic_settings/) reads
    configuration values from a variety of sources including environment variables.

    This class automatically reads from:
    1. Environment variables (LDAP_URL, DB_HOST, BATCH_SIZE, ...)
    2. .env file (local development)

    Environment variable names are treated case-insensitively.
    """

    # LDAP Configuration
    ldap_url: str = "ldap://localhost:389"
    """LDAP server URL (ldap:// or ldaps://)."""

    ldap_bind_dn: str = "cn=Directory Manager"
    """DN used to bind to the directory."""

    ldap_bind_password: str = ""
    """Password for the bind DN (required)."""

    ldap_base_dn: str = "ou=clients,dc=example,dc=com"
    """Base DN under which every client organizational unit lives."""

    ldap_timeout: int = Field(default=10, ge=1)
    """Connect/receive timeout for directory operations, in seconds."""

    # Database Configuration
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "usersdb"

    db_schema: str = "public"
    """Schema holding the clients, users and migration_log tables."""

    db_pool_max_size: int = Field(default=10, ge=1)
    """Upper bound of the asyncpg pool."""

    # Migration Configuration
    dry_run: bool = False
    """Read and derive everything but never write clients or users."""

    batch_size: int = Field(default=100, ge=1)
    """Number of users processed per batch within one client."""

    max_concurrent_users: int = Field(default=10, ge=1)
    """Maximum users in flight at once inside a batch."""

    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    """bcrypt cost factor for provisioned credentials."""

    credential_policy: str = "random"
    """'random' provisions an unknown bcrypt credential, 'none' migrates users without one."""

    # Logging
    log_level: str = "INFO"
    log_file_path: str = "./logs/migration.log"
    """Path of the JSON log file. Empty string disables file logging."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",  # Load from .env file if it exists (local development)
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra environment variables not defined in the model
        validate_default=True,
    )

    @field_validator("db_schema")
    @classmethod
    def _check_schema(cls, value: str) -> str:
        if not _IDENTIFIER_RE.match(value):
            raise ValueError(f"db_schema must be a plain SQL identifier (got: {value!r})")
        # PostgreSQL folds unquoted identifiers to lower case
        return value.lower()

    @field_validator("credential_policy")
    @classmethod
    def _check_policy(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("random", "none"):
            raise ValueError(f"credential_policy must be 'random' or 'none' (got: {value!r})")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper()

    def missing_required_fields(self) -> List[str]:
        """Get list of required configuration variables that are empty."""
        required = [
            (self.ldap_url, "LDAP_URL"),
            (self.ldap_bind_dn, "LDAP_BIND_DN"),
            (self.ldap_bind_password, "LDAP_BIND_PASSWORD"),
            (self.ldap_base_dn, "LDAP_BASE_DN"),
            (self.db_host, "DB_HOST"),
            (self.db_user, "DB_USER"),
            (self.db_password, "DB_PASSWORD"),
            (self.db_name, "DB_NAME"),
        ]
        return [name for value, name in required if not value]

    def validate_required(self) -> bool:
        """Validate that all required configuration is present."""
        return not self.missing_required_fields()

    def config_summary(self) -> Dict[str, Any]:
        """Configuration for logging, without secrets."""
        return {
            "ldap": {
                "url": self.ldap_url,
                "bind_dn": self.ldap_bind_dn,
                "base_dn": self.ldap_base_dn,
                "timeout": self.ldap_timeout,
            },
            "database": {
                "host": self.db_host,
                "port": self.db_port,
                "user": self.db_user,
                "database": self.db_name,
                "schema": self.db_schema,
            },
            "migration": {
                "dry_run": self.dry_run,
                "batch_size": self.batch_size,
                "max_concurrent_users": self.max_concurrent_users,
                "bcrypt_rounds": self.bcrypt_rounds,
                "credential_policy": self.credential_policy,
            },
            "logging": {
                "level": self.log_level,
                "file": self.log_file_path or None,
            },
        }
