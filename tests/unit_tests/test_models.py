"""Tests for run statistics."""

from ldap_migration.migration.models import ClientOutcome
from ldap_migration.migration.models import MigrationStats
from ldap_migration.migration.models import UserOutcome
from ldap_migration.migration.models import UserRecord


class TestMigrationStats:
    """Tests for merging outcomes."""

    def test_add_users(self):
        """Test a batch of outcomes updates the counters and keeps error order."""
        stats = MigrationStats(total_users=4)
        stats.add_users(
            [
                UserOutcome(username="a", ok=True, inserted=True),
                UserOutcome(username="b", ok=False, error="too long"),
                UserOutcome(username="c", ok=True),
                UserOutcome(username="d", ok=False, error="timeout"),
            ]
        )

        assert (stats.successful_users, stats.failed_users, stats.created_users) == (2, 2, 1)
        assert stats.errors == ["User b: too long", "User d: timeout"]

    def test_add_client(self):
        """Test client outcomes update client counters."""
        stats = MigrationStats(total_clients=2)
        stats.add_client(ClientOutcome(name="acme", ok=True, inserted=True, user_count=3))
        stats.add_client(ClientOutcome(name="globex", error="deadlock"))

        assert (stats.successful_clients, stats.failed_clients, stats.created_clients) == (1, 1, 1)
        assert stats.errors == ["Client globex: deadlock"]

    def test_to_summary(self):
        """Test the summary is a snapshot of the counters."""
        stats = MigrationStats(total_clients=1, successful_clients=1, errors=["x"])

        summary = stats.to_summary(dry_run=True)
        stats.errors.append("y")

        assert summary.total_clients == 1
        assert summary.errors == ["x"]
        assert summary.dry_run is True
        assert summary.id is None


class TestUserRecord:
    """Tests for UserRecord."""

    def test_with_credential_copies(self):
        """Test the converted credential is set on a copy."""
        user = UserRecord(username="jdoe", path="uid=jdoe,ou=acme")

        converted = user.with_credential("$2b$04$x")

        assert converted.target_credential == "$2b$04$x"
        assert user.target_credential is None
        assert converted.email == ""
