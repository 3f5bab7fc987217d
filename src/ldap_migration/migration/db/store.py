"""
Store Writer

PostgresStore is the single entry point the orchestrator writes through:
connection lifecycle, keyed upserts for clients and users, and the
append-only run summaries. DryRunStore stands in front of it during dry
runs and never forwards client or user writes.
"""

import asyncio
from typing import Dict
from typing import List
from typing import Optional

import asyncpg
from loguru import logger

from ldap_migration.errors import StoreConnectionError
from ldap_migration.errors import StoreWriteError
from ldap_migration.migration.db.pool import StorePool
from ldap_migration.migration.db.repository_client import ClientRepository
from ldap_migration.migration.db.repository_run import RunSummaryRepository
from ldap_migration.migration.db.repository_user import UserRepository
from ldap_migration.migration.models import ClientRow
from ldap_migration.migration.models import RunSummary
from ldap_migration.migration.models import UserRecord
from ldap_migration.migration.models import UserRow

# Errors raised by asyncpg for a single statement or a broken connection
STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


class PostgresStore:
    """Idempotent writer for clients, users and run summaries."""

    def __init__(self, pool: StorePool):
        self.pool = pool
        self.clients = ClientRepository(pool)
        self.users = UserRepository(pool)
        self.runs = RunSummaryRepository(pool)

    @classmethod
    def from_settings(cls, settings) -> "PostgresStore":
        return cls(StorePool.from_settings(settings))

    async def connect(self) -> None:
        """
        Open the pool and make sure the tables exist.

        Raises:
            StoreConnectionError: If the database is unreachable, rejects the login or
                the schema cannot be created
        """
        try:
            await self.pool.initialize()
        except Exception as e:
            raise StoreConnectionError(f"Database initialization failed: {e}", cause=e) from e

    async def close(self) -> None:
        await self.pool.close()

    async def upsert_client_group(self, name: str, display_name: Optional[str] = None) -> ClientRow:
        """Create or update a client by OU name."""
        try:
            client = await self.clients.upsert(name, display_name)
        except STORE_ERRORS as e:
            logger.error("Client upsert failed", client=name, error=str(e))
            raise StoreWriteError(f"Client upsert failed for {name}: {e}") from e
        logger.debug(
            f"Database client_{'created' if client.inserted else 'updated'}",
            client=name,
            client_pk=client.id,
        )
        return client

    async def upsert_user(self, user: UserRecord, client_pk: int) -> UserRow:
        """Create or update a user by (client, username)."""
        try:
            row = await self.users.upsert(user, client_pk)
        except STORE_ERRORS as e:
            logger.error("User upsert failed", username=user.username, client_pk=client_pk, error=str(e))
            raise StoreWriteError(f"User upsert failed for {user.username}: {e}") from e
        logger.debug(
            f"Database user_{'created' if row.inserted else 'updated'}",
            username=user.username,
            client_pk=client_pk,
        )
        return row

    async def record_run(self, summary: RunSummary) -> RunSummary:
        """Append one run summary."""
        try:
            stored = await self.runs.create(summary)
        except STORE_ERRORS as e:
            raise StoreWriteError(f"Migration logging failed: {e}") from e
        logger.debug("Database migration_logged", run_id=stored.id, dry_run=stored.dry_run)
        return stored

    async def list_runs(self, limit: int = 20) -> List[RunSummary]:
        """Prior run summaries, newest first."""
        return await self.runs.list_recent(limit)

    async def table_counts(self) -> Dict[str, int]:
        return await self.pool.get_table_counts()

    async def health_check(self) -> bool:
        return await self.pool.health_check()


class DryRunStore:
    """
    Store used for dry runs.

    Client and user upserts are intercepted here and answered with synthetic
    "would have succeeded" rows; the wrapped store's client and user tables are
    never touched. Connection handling, run summaries and reads go through.
    """

    def __init__(self, store: PostgresStore):
        self.store = store
        self._next_client_pk = 0

    async def connect(self) -> None:
        await self.store.connect()

    async def close(self) -> None:
        await self.store.close()

    async def upsert_client_group(self, name: str, display_name: Optional[str] = None) -> ClientRow:
        # Negative keys can never collide with serial ids
        self._next_client_pk -= 1
        logger.debug("Dry run: skipping client upsert", client=name)
        return ClientRow(id=self._next_client_pk, client_id=name, name=display_name or None)

    async def upsert_user(self, user: UserRecord, client_pk: int) -> UserRow:
        logger.debug("Dry run: skipping user upsert", username=user.username, client_pk=client_pk)
        return UserRow(
            id=0,
            client_id=client_pk,
            username=user.username,
            first_name=user.given_name or None,
            last_name=user.family_name or None,
            email=user.email or None,
            password_hash=user.target_credential,
            ldap_dn=user.path,
        )

    async def record_run(self, summary: RunSummary) -> RunSummary:
        return await self.store.record_run(summary)

    async def list_runs(self, limit: int = 20) -> List[RunSummary]:
        return await self.store.list_runs(limit)

    async def table_counts(self) -> Dict[str, int]:
        return await self.store.table_counts()

    async def health_check(self) -> bool:
        return await self.store.health_check()
