"""
Command line entry point for the LDAP to PostgreSQL migration.

Usage:
    ldap-migration                      Run the migration
    ldap-migration --dry-run            Read and derive everything, write only the run summary
    ldap-migration --validate-config    Check settings, directory bind and database access
    ldap-migration --show-history       Print prior runs, newest first
"""

import argparse
import asyncio
import signal
import sys
from typing import List
from typing import Optional

import pydantic
from loguru import logger

from ldap_migration.directory import LdapDirectoryReader
from ldap_migration.errors import ConnectionFailure
from ldap_migration.migration.db import PostgresStore
from ldap_migration.migration.models import RunSummary
from ldap_migration.migration.orchestrator import MigrationOrchestrator
from ldap_migration.migration.orchestrator import validate_setup
from ldap_migration.monitoring.logger import configure_logger
from ldap_migration.monitoring.reporter import RunReporter
from ldap_migration.settings import Settings

EXIT_OK = 0
EXIT_FAILURE = 1


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="ldap-migration",
        description="Migrate clients and users from an LDAP directory into PostgreSQL",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--validate-config", action="store_true", help="Validate configuration and connectivity, then exit")
    mode.add_argument("--show-history", action="store_true", help="Show prior migration runs, newest first")
    parser.add_argument("--limit", type=int, default=20, help="Number of runs shown by --show-history (default: 20)")
    parser.add_argument("--dry-run", action="store_true", help="Do not write clients or users")
    parser.add_argument("--batch-size", type=int, help="Users per batch (overrides BATCH_SIZE)")
    parser.add_argument("--max-concurrent", type=int, help="Concurrent users per batch (overrides MAX_CONCURRENT_USERS)")
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> Settings:
    """Settings from the environment, with command line overrides applied."""
    overrides = {}
    if args.dry_run:
        overrides["dry_run"] = True
    if args.batch_size is not None:
        overrides["batch_size"] = args.batch_size
    if args.max_concurrent is not None:
        overrides["max_concurrent_users"] = args.max_concurrent
    return Settings(**overrides)


def format_history(runs: List[RunSummary]) -> str:
    """Render run summaries as a plain text table."""
    if not runs:
        return "No migration runs recorded."

    lines = [
        f"{'ID':>5}  {'DATE':<19}  {'CLIENTS':>9}  {'USERS':>11}  {'ERRORS':>6}  DRY RUN",
        "-" * 66,
    ]
    for run in runs:
        date = run.migration_date.strftime("%Y-%m-%d %H:%M:%S") if run.migration_date else "-"
        clients = f"{run.successful_clients}/{run.total_clients}"
        users = f"{run.successful_users}/{run.total_users}"
        lines.append(
            f"{run.id or 0:>5}  {date:<19}  {clients:>9}  {users:>11}  {len(run.errors):>6}  {'yes' if run.dry_run else 'no'}"
        )
    return "\n".join(lines)


async def run_validate(settings: Settings) -> int:
    ok = await validate_setup(
        settings,
        LdapDirectoryReader.from_settings(settings),
        PostgresStore.from_settings(settings),
    )
    print("Configuration is valid." if ok else "Configuration is NOT valid, see the log for details.")
    return EXIT_OK if ok else EXIT_FAILURE


async def run_history(settings: Settings, limit: int) -> int:
    store = PostgresStore.from_settings(settings)
    try:
        await store.connect()
        runs = await RunReporter(store).history(limit)
    except ConnectionFailure as e:
        logger.error("Cannot read migration history", error=e.detail)
        return EXIT_FAILURE
    finally:
        await store.close()
    print(format_history(runs))
    return EXIT_OK


async def run_migration(settings: Settings) -> int:
    """Run one migration and print the resulting table counts."""
    orchestrator = MigrationOrchestrator.from_settings(settings)
    try:
        result = await orchestrator.migrate()
    except ConnectionFailure as e:
        print(f"Migration failed: {e.detail}", file=sys.stderr)
        return EXIT_FAILURE

    stats = result.stats
    print(
        f"Clients: {stats.successful_clients}/{stats.total_clients} "
        f"(created {stats.created_clients}, failed {stats.failed_clients})"
    )
    print(
        f"Users:   {stats.successful_users}/{stats.total_users} "
        f"(created {stats.created_users}, failed {stats.failed_users})"
    )
    print(f"Duration: {result.duration_ms}ms{' (dry run)' if result.dry_run else ''}")

    await print_table_counts(settings)
    return EXIT_OK if result.success else EXIT_FAILURE


async def print_table_counts(settings: Settings) -> None:
    """Print current row counts; problems reading them never change the exit code."""
    store = PostgresStore.from_settings(settings)
    try:
        await store.connect()
        counts = await store.table_counts()
    except Exception as e:  # pylint: disable=broad-except
        logger.warning("Could not read table counts", error=str(e))
        return
    finally:
        await store.close()
    print("Table counts: " + ", ".join(f"{table}={count}" for table, count in counts.items()))


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    # SIGTERM cancels the run so the orchestrator releases its connections
    task = asyncio.current_task()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, task.cancel)
    except NotImplementedError:
        # Signal handlers are not available on this platform's event loop
        pass

    if args.validate_config:
        return await run_validate(settings)
    if args.show_history:
        return await run_history(settings, args.limit)
    return await run_migration(settings)


def main(argv: Optional[List[str]] = None) -> int:
    """Console script entry point."""
    args = parse_args(argv)

    try:
        settings = load_settings(args)
    except pydantic.ValidationError as e:
        logger.error(f"Invalid configuration:\n{e}")
        return EXIT_FAILURE

    configure_logger(settings.log_level, settings.log_file_path or None)
    logger.info("Configuration loaded", config=settings.config_summary())

    try:
        return asyncio.run(_run(args, settings))
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.warning("Migration interrupted")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
