"""
Run Reporter

Progress and final statistics for a migration run, plus read access to
prior run summaries.

Reporting is observational only: nothing here changes orchestration state,
and a failing log sink never fails the run.
"""

from typing import Dict
from typing import List

from loguru import logger

from ldap_migration.migration.models import RunResult
from ldap_migration.migration.models import RunSummary


def percentage(current: int, total: int) -> int:
    """Whole percentage complete; an empty total counts as done."""
    if total <= 0:
        return 100
    return max(0, min(100, round(current * 100 / total)))


class RunReporter:
    """
    Helper for reporting migration progress.

    Wraps logger calls so that the orchestrator can report without caring
    whether the channel works.
    """

    def __init__(self, store=None):
        """
        Initialize reporter.

        Args:
            store: Store writer used by history(); optional when history is not needed
        """
        self.store = store
        self._last_percentage: Dict[str, int] = {}

    def progress(self, current: int, total: int, label: str) -> None:
        """
        Report progress for one label ("clients", "users in acme", ...).

        The reported percentage never decreases for a given label.
        """
        try:
            pct = max(percentage(current, total), self._last_percentage.get(label, 0))
            self._last_percentage[label] = pct
            # bind() keeps labels containing braces out of str.format
            logger.bind(current=current, total=total, percentage=pct, type=label).info(
                f"Migration progress: {current}/{total} {label} ({pct}%)"
            )
        except Exception:  # pylint: disable=broad-except
            # Reporting must never fail the run
            return

    def summary(self, result: RunResult) -> None:
        """Report the final statistics of a run."""
        try:
            stats = result.stats
            details = {
                "duration": f"{result.duration_ms}ms",
                "dry_run": result.dry_run,
                "clients": f"{stats.successful_clients}/{stats.total_clients}",
                "users": f"{stats.successful_users}/{stats.total_users}",
                "created_clients": stats.created_clients,
                "created_users": stats.created_users,
            }
            if result.success:
                logger.success("✅ Migration completed successfully", **details)
            else:
                logger.warning(
                    "⚠️ Migration completed with errors",
                    failed_clients=stats.failed_clients,
                    failed_users=stats.failed_users,
                    error_count=len(stats.errors),
                    **details,
                )
                for error in stats.errors:
                    logger.error(f"Migration error: {error}")
        except Exception:  # pylint: disable=broad-except
            return

    async def history(self, limit: int = 20) -> List[RunSummary]:
        """
        Prior run summaries, newest first.

        Args:
            limit: Maximum number of runs to return
        """
        if self.store is None:
            raise RuntimeError("RunReporter.history() needs a store")
        return await self.store.list_runs(limit)
