"""
Run Models

Per-entity outcomes and the statistics they are merged into.
Outcomes are plain values returned by the tasks that own them; only the
orchestrator merges them, at batch fan-in, so no counter is shared between
concurrent tasks.
"""

from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import Field

from ldap_migration.migration.models.store import RunSummary


class UserOutcome(BaseModel):
    """Result of migrating one user."""

    username: str
    ok: bool
    inserted: bool = False
    has_credential: bool = False
    error: Optional[str] = None

    @property
    def message(self) -> str:
        return f"User {self.username}: {self.error}"


class ClientOutcome(BaseModel):
    """Result of migrating one client record; its users are reported as UserOutcomes."""

    name: str
    ok: bool = False
    inserted: bool = False
    user_count: int = 0
    error: Optional[str] = None

    @property
    def message(self) -> str:
        return f"Client {self.name}: {self.error}"


class MigrationStats(BaseModel):
    """Aggregate statistics for a run."""

    total_clients: int = 0
    total_users: int = 0
    successful_clients: int = 0
    successful_users: int = 0
    failed_clients: int = 0
    failed_users: int = 0
    created_clients: int = 0
    created_users: int = 0
    errors: List[str] = Field(default_factory=list)

    def add_users(self, outcomes: List[UserOutcome]) -> None:
        """Merge the settled outcomes of one batch."""
        for outcome in outcomes:
            if outcome.ok:
                self.successful_users += 1
                if outcome.inserted:
                    self.created_users += 1
            else:
                self.failed_users += 1
                self.errors.append(outcome.message)

    def add_client(self, outcome: ClientOutcome) -> None:
        """Merge the outcome of one client (its users are merged separately, batch by batch)."""
        if outcome.ok:
            self.successful_clients += 1
            if outcome.inserted:
                self.created_clients += 1
        else:
            self.failed_clients += 1
            self.errors.append(outcome.message)

    def to_summary(self, dry_run: bool) -> RunSummary:
        """Snapshot of the statistics as a run summary to persist."""
        return RunSummary(
            total_clients=self.total_clients,
            total_users=self.total_users,
            successful_clients=self.successful_clients,
            successful_users=self.successful_users,
            failed_clients=self.failed_clients,
            failed_users=self.failed_users,
            errors=list(self.errors),
            dry_run=dry_run,
        )


class RunResult(BaseModel):
    """What ``migrate()`` hands back to its caller."""

    success: bool
    duration_ms: int
    dry_run: bool
    stats: MigrationStats
    summary: Optional[RunSummary] = None  # None when persisting the summary failed
