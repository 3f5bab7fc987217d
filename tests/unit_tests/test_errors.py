"""Tests for errors.py."""

import pytest

from ldap_migration.errors import ConnectionFailure
from ldap_migration.errors import DirectoryConnectionError
from ldap_migration.errors import MigrationError
from ldap_migration.errors import StoreConnectionError
from ldap_migration.errors import describe_connection_error


class TestDescribeConnectionError:
    """Tests for describe_connection_error."""

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("timed out", "timed out"),
            ("[Errno -2] Name or service not known", "Unable to resolve"),
            ("[Errno 111] Connection refused", "refused"),
            ("SSL: CERTIFICATE_VERIFY_FAILED", "SSL/TLS"),
            ("automatic bind not successful - invalidCredentials", "rejected"),
            ('password authentication failed for user "postgres"', "rejected"),
            ("something else", "Unable to connect to"),
        ],
    )
    def test_classification(self, message, expected):
        """Test common failure causes are recognized."""
        assert expected in describe_connection_error(Exception(message), "LDAP directory")


class TestConnectionFailure:
    """Tests for the connection error hierarchy."""

    def test_hierarchy(self):
        """Test both connection errors are fatal migration errors."""
        assert issubclass(DirectoryConnectionError, ConnectionFailure)
        assert issubclass(StoreConnectionError, ConnectionFailure)
        assert issubclass(ConnectionFailure, MigrationError)

    def test_detail_uses_target(self):
        """Test the detail names what could not be reached."""
        error = StoreConnectionError("init failed", cause=OSError("Connection refused"))

        assert error.detail == "Connection to PostgreSQL database was refused. Please verify the host and port."

    def test_detail_without_cause(self):
        """Test the message is used when there is no cause."""
        assert DirectoryConnectionError("no bind").detail == "no bind"
