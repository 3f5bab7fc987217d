"""
Migration Orchestrator

Drives one run: connect, enumerate client groups, upsert each client and its
users, persist a run summary, release both connections.

Clients are processed one after another in directory order. Users of a
client are processed in contiguous batches; batches run sequentially and the
users inside a batch run concurrently, bounded by a semaphore. Every user
task returns a UserOutcome and the outcomes of a batch are merged into the
run statistics only after the whole batch has settled.
"""

import asyncio
import time
from typing import List
from typing import Optional

from loguru import logger

from ldap_migration.credentials import HashConverter
from ldap_migration.directory import LdapDirectoryReader
from ldap_migration.errors import ConnectionFailure
from ldap_migration.errors import MigrationError
from ldap_migration.migration.db import DryRunStore
from ldap_migration.migration.db import PostgresStore
from ldap_migration.migration.enums import CredentialPolicy
from ldap_migration.migration.enums import RunState
from ldap_migration.migration.models import ClientGroup
from ldap_migration.migration.models import ClientOutcome
from ldap_migration.migration.models import MigrationStats
from ldap_migration.migration.models import RunResult
from ldap_migration.migration.models import RunSummary
from ldap_migration.migration.models import UserOutcome
from ldap_migration.migration.models import UserRecord
from ldap_migration.monitoring.reporter import RunReporter


class MigrationOrchestrator:
    """Runs the directory-to-store migration."""

    def __init__(
        self,
        directory,
        store,
        reporter: Optional[RunReporter] = None,
        converter: Optional[HashConverter] = None,
        batch_size: int = 100,
        max_concurrent_users: int = 10,
        dry_run: bool = False,
    ):
        """
        Initialize the orchestrator.

        Args:
            directory: Directory reader (connect/disconnect/list_client_groups/list_users)
            store: Store writer; wrapped in a DryRunStore when dry_run is set
            reporter: Progress and summary reporter
            converter: Credential converter (bcrypt, random policy by default)
            batch_size: Users per batch
            max_concurrent_users: Users in flight at once inside a batch
            dry_run: Read and derive everything, write only the run summary
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1 (got: {batch_size})")
        if max_concurrent_users < 1:
            raise ValueError(f"max_concurrent_users must be at least 1 (got: {max_concurrent_users})")

        self.directory = directory
        self.store = DryRunStore(store) if dry_run and not isinstance(store, DryRunStore) else store
        self.reporter = reporter or RunReporter(store)
        self.converter = converter or HashConverter()
        self.batch_size = batch_size
        self.max_concurrent_users = max_concurrent_users
        self.dry_run = dry_run
        self.state = RunState.IDLE

    @classmethod
    def from_settings(cls, settings) -> "MigrationOrchestrator":
        """Build the orchestrator and its collaborators from Settings."""
        store = PostgresStore.from_settings(settings)
        return cls(
            directory=LdapDirectoryReader.from_settings(settings),
            store=store,
            reporter=RunReporter(store),
            converter=HashConverter(rounds=settings.bcrypt_rounds, policy=settings.credential_policy),
            batch_size=settings.batch_size,
            max_concurrent_users=settings.max_concurrent_users,
            dry_run=settings.dry_run,
        )

    async def migrate(self) -> RunResult:
        """
        Run the migration once.

        Returns:
            RunResult with the merged statistics and the persisted summary

        Raises:
            ConnectionFailure: If the directory or the store cannot be reached.
                No summary is written in that case.
        """
        started = time.monotonic()
        stats = MigrationStats()
        self._log_run_start()

        try:
            await self._connect()

            clients = await self._enumerate_clients(stats)
            if clients is not None:
                for index, group in enumerate(clients, start=1):
                    self.state = RunState.PROCESSING_CLIENT
                    await self._process_client(group, stats)
                    self.reporter.progress(index, len(clients), "clients")

            self.state = RunState.FINALIZING
            result = await self._finalize(stats, started, enumerated=clients is not None)
            self.state = RunState.DONE
            return result

        except ConnectionFailure:
            raise
        except Exception as e:
            if self.state == RunState.CONNECTING:
                # Nothing was processed and the store may not be open: no summary
                self.state = RunState.FAILED
                logger.exception("Migration cannot start", error=str(e))
                raise
            # Unexpected errors abort the run; what was done so far is still recorded
            logger.exception("Migration run aborted", state=self.state.value, error=str(e))
            stats.errors.append(f"Run aborted: {e}")
            await self._persist(stats)
            raise
        finally:
            await self._release()

    def _log_run_start(self) -> None:
        logger.info("=" * 80)
        logger.info("LDAP TO POSTGRESQL MIGRATION")
        logger.info("=" * 80)
        logger.info(
            "Migration starting",
            dry_run=self.dry_run,
            batch_size=self.batch_size,
            max_concurrent_users=self.max_concurrent_users,
            credential_policy=self.converter.policy.value,
        )
        if self.converter.policy == CredentialPolicy.RANDOM:
            logger.warning(
                "Directory password hashes cannot be converted to bcrypt. Migrated users receive a random "
                "unknown password and must reset it before they can log in."
            )
        else:
            logger.warning("Credential policy is 'none': users are migrated without a password")
        if self.dry_run:
            logger.warning("DRY RUN: no client or user will be written, only the run summary")

    async def _connect(self) -> None:
        self.state = RunState.CONNECTING
        try:
            await self.directory.connect()
            await self.store.connect()
        except ConnectionFailure as e:
            self.state = RunState.FAILED
            logger.error("Migration cannot start", target=e.target, error=e.detail)
            raise

    async def _enumerate_clients(self, stats: MigrationStats) -> Optional[List[ClientGroup]]:
        """List client groups; None when the listing itself failed."""
        self.state = RunState.ENUMERATING_CLIENTS
        try:
            clients = await self.directory.list_client_groups()
        except MigrationError as e:
            logger.error("Client enumeration failed", error=str(e))
            stats.errors.append(f"Client enumeration failed: {e}")
            return None

        stats.total_clients = len(clients)
        logger.info(f"Found {len(clients)} client groups")
        return clients

    async def _process_client(self, group: ClientGroup, stats: MigrationStats) -> None:
        """
        Upsert one client, then its users batch by batch.

        A failed client upsert skips the client's users entirely.
        """
        logger.info("Processing client", client=group.name)
        try:
            client = await self.store.upsert_client_group(group.name, group.display_name)
        except MigrationError as e:
            stats.add_client(ClientOutcome(name=group.name, error=str(e)))
            return

        try:
            users = await self.directory.list_users(group.name)
        except MigrationError as e:
            logger.error("User listing failed", client=group.name, error=str(e))
            stats.add_client(ClientOutcome(name=group.name, inserted=client.inserted, error=str(e)))
            return

        stats.total_users += len(users)
        label = f"users in {group.name}"
        if not users:
            self.reporter.progress(0, 0, label)

        for start in range(0, len(users), self.batch_size):
            batch = users[start : start + self.batch_size]
            await self._process_batch(batch, client.id, stats)
            self.reporter.progress(start + len(batch), len(users), label)

        stats.add_client(ClientOutcome(name=group.name, ok=True, inserted=client.inserted, user_count=len(users)))
        logger.info("Client processed", client=group.name, users=len(users))

    async def _process_batch(self, batch: List[UserRecord], client_pk: int, stats: MigrationStats) -> None:
        """
        Run one batch concurrently and merge its outcomes once every task has settled.

        Raises:
            Exception: The first unexpected (non-migration) error of the batch, after the
                outcomes of its siblings have been merged
        """
        semaphore = asyncio.Semaphore(self.max_concurrent_users)

        async def bounded(user: UserRecord) -> UserOutcome:
            async with semaphore:
                return await self._process_user(user, client_pk)

        settled = await asyncio.gather(*(bounded(user) for user in batch), return_exceptions=True)

        outcomes = [result for result in settled if isinstance(result, UserOutcome)]
        stats.add_users(outcomes)

        unexpected = [result for result in settled if isinstance(result, BaseException)]
        if unexpected:
            raise unexpected[0]

    async def _process_user(self, user: UserRecord, client_pk: int) -> UserOutcome:
        """Convert the credential and upsert one user."""
        credential = await asyncio.to_thread(self.converter.convert, user.raw_credential)
        try:
            row = await self.store.upsert_user(user.with_credential(credential), client_pk)
        except MigrationError as e:
            return UserOutcome(username=user.username, ok=False, error=str(e))
        return UserOutcome(
            username=user.username,
            ok=True,
            inserted=row.inserted,
            has_credential=credential is not None,
        )

    async def _finalize(self, stats: MigrationStats, started: float, enumerated: bool) -> RunResult:
        summary = await self._persist(stats)
        result = RunResult(
            success=enumerated and stats.failed_clients == 0 and stats.failed_users == 0,
            duration_ms=int((time.monotonic() - started) * 1000),
            dry_run=self.dry_run,
            stats=stats,
            summary=summary,
        )
        self.reporter.summary(result)
        return result

    async def _persist(self, stats: MigrationStats) -> Optional[RunSummary]:
        """Write the run summary; a failure is logged and yields None."""
        try:
            return await self.store.record_run(stats.to_summary(self.dry_run))
        except MigrationError as e:
            logger.error("Failed to persist run summary", error=str(e))
            return None

    async def _release(self) -> None:
        """Release both connections; errors are logged, never raised."""
        try:
            await self.directory.disconnect()
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("Directory disconnect failed", error=str(e))
        try:
            await self.store.close()
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("Store close failed", error=str(e))


async def validate_setup(settings, directory, store) -> bool:
    """
    Check configuration, directory bind and store connectivity.

    Args:
        settings: Settings instance
        directory: Directory reader with test_connection()
        store: Store writer with connect()/health_check()/close()

    Returns:
        True when everything needed for a run is in place. Never raises.
    """
    logger.info("Validating migration setup")

    missing = settings.missing_required_fields()
    if missing:
        logger.error("Missing required configuration", missing=missing)
        return False
    logger.info("Configuration OK", config=settings.config_summary())

    try:
        if not await directory.test_connection():
            return False
    except Exception as e:  # pylint: disable=broad-except
        logger.error("LDAP connection test failed", error=str(e))
        return False

    try:
        await store.connect()
        healthy = await store.health_check()
    except ConnectionFailure as e:
        logger.error("Database connection test failed", error=e.detail)
        return False
    except Exception as e:  # pylint: disable=broad-except
        logger.error("Database connection test failed", error=str(e))
        return False
    finally:
        try:
            await store.close()
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("Store close failed", error=str(e))

    if not healthy:
        logger.error("Database health check failed")
        return False

    logger.success("Setup validation passed")
    return True
