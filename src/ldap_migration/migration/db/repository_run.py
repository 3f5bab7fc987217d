"""
Run Summary Repository

Repository for migration run summaries (append-only table).
"""

import json
from typing import List

from ldap_migration.migration.db.pool import StorePool
from ldap_migration.migration.db.repository_base import BaseRepository
from ldap_migration.migration.models import RunSummary


class RunSummaryRepository(BaseRepository):
    """Run summary repository (append-only, never updated)."""

    def __init__(self, pool: StorePool):
        super().__init__(pool, "migration_log")

    async def create(self, summary: RunSummary) -> RunSummary:
        """Insert one run summary and return it with its id and timestamp."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO {self.qualified_table}
                    (total_clients, total_users, successful_clients, successful_users,
                     failed_clients, failed_users, error_log, dry_run)
                VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb, $8)
                RETURNING *
                """,
                summary.total_clients,
                summary.total_users,
                summary.successful_clients,
                summary.successful_users,
                summary.failed_clients,
                summary.failed_users,
                json.dumps(summary.errors),
                summary.dry_run,
            )
            return RunSummary.from_row(row)

    async def list_recent(self, limit: int = 20) -> List[RunSummary]:
        """Prior runs, newest first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT * FROM {self.qualified_table}
                ORDER BY id DESC
                LIMIT $1
                """,
                limit,
            )
            return [RunSummary.from_row(row) for row in rows]
