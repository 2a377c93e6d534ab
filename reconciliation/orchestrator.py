"""
Run orchestrator: one complete roster-to-directory reconciliation run.

Pipeline:
    1. Record run start (starts the shared wait budget)
    2. Wait for the maintenance flag to clear
    3. Acquire the exclusive run lock
    4. Load roster rows; zero rows ends the run with no directory calls
    5. Partition rows by group
    6. Reconcile every group; any group failure aborts the whole run
    7. Publish results (last-operation time only if something changed)
    8. Release the lock, on every exit path
"""

import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from coordination.backoff import MAX_WAIT_SECONDS, Deadline
from coordination.coordinator import ExclusionCoordinator
from reconciliation.engine import MembershipReconciler, any_changes, group_rows
from roster.models import DiffResult, RosterRow, SyncResult
from shared.log import create_logger

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Orchestrator")


@dataclass
class RunReport:
    """Summary of a run.

    Attributes:
        results: One SyncResult per reconciled group (empty in dry-run)
        changed: True if any group added or removed a member
        rows_loaded: Valid roster rows
        groups_checked: Distinct groups reconciled
        planned: group_id -> DiffResult, populated in dry-run only
        elapsed: Seconds from run start to completion
    """
    results: list[SyncResult] = field(default_factory=list)
    changed: bool = False
    rows_loaded: int = 0
    groups_checked: int = 0
    planned: dict[str, DiffResult] = field(default_factory=dict)
    elapsed: float = 0.0

    @property
    def total_added(self) -> int:
        return sum(len(r.added) for r in self.results)

    @property
    def total_removed(self) -> int:
        return sum(len(r.removed) for r in self.results)


class RunOrchestrator:
    """Sequences coordinator, roster, engine and sink for one run.

    Args:
        coordinator: ExclusionCoordinator for the maintenance flag and run lock
        roster_source: Object with load() -> list[RosterRow]
        reconciler: MembershipReconciler bound to a directory client
        excluded_source: Object with load() -> set[str]
        sink: Object with publish(results, changed, rows)
        max_wait_seconds: Shared ceiling for both coordinator waits
        max_workers: Groups reconciled concurrently (1 = sequential)
        dry_run: Plan only; no add/remove calls, nothing published
        clock: Monotonic clock for the wait budget (injectable for tests)
        now: Returns the aware reference time for validity windows
    """

    def __init__(
        self,
        coordinator: ExclusionCoordinator,
        roster_source,
        reconciler: MembershipReconciler,
        excluded_source,
        sink,
        max_wait_seconds: float = MAX_WAIT_SECONDS,
        max_workers: int = 1,
        dry_run: bool = False,
        clock: Optional[Callable[[], float]] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.coordinator = coordinator
        self.roster_source = roster_source
        self.reconciler = reconciler
        self.excluded_source = excluded_source
        self.sink = sink
        self.max_wait_seconds = max_wait_seconds
        self.max_workers = max_workers
        self.dry_run = dry_run
        self._clock = clock or time.monotonic
        self._now = now or (lambda: datetime.now(timezone.utc))

    def run(self) -> RunReport:
        """
        Execute one reconciliation run.

        Returns:
            RunReport describing what changed

        Raises:
            LockTimeoutError: Maintenance wait or lock acquisition timed out
            GroupNotFoundError: A roster group does not exist in the directory
            DirectoryError: Member listing failed
            ConfigurationError: Roster or settings store unusable
        """
        deadline = Deadline.start_now(self.max_wait_seconds, self._clock)
        report = RunReport()
        handle = None

        log_info("===== Run start =====")
        try:
            excluded = self.excluded_source.load()

            self.coordinator.wait_until_maintenance_clear(deadline)
            handle = self.coordinator.acquire_exclusive_lock(deadline)

            rows = self.roster_source.load()
            report.rows_loaded = len(rows)
            if not rows:
                log_info("Roster has no rows, nothing to reconcile")
                return report

            by_group = group_rows(rows)
            report.groups_checked = len(by_group)
            log_info(f"Processing {len(by_group)} unique group(s)")

            now = self._now()
            if self.dry_run:
                report.planned = self._plan_all(by_group, excluded, now)
                return report

            report.results = self._reconcile_all(by_group, excluded, now)
            report.changed = any_changes(report.results)
            self.sink.publish(report.results, report.changed, rows)

            log_info(
                f"===== Run complete: {report.total_added} added, "
                f"{report.total_removed} removed across {report.groups_checked} group(s) ====="
            )
            return report
        except Exception as e:
            log_error(f"[Critical] Run failed after {deadline.elapsed():.1f}s: {type(e).__name__}: {e}")
            raise
        finally:
            report.elapsed = deadline.elapsed()
            if handle is not None:
                handle.release()

    def _plan_all(
        self,
        by_group: dict[str, list[RosterRow]],
        excluded: set[str],
        now: datetime,
    ) -> dict[str, DiffResult]:
        planned = {}
        for group_id, rows in by_group.items():
            plan = self.reconciler.plan_group(group_id, rows, excluded, now)
            planned[group_id] = plan.diff
            log_info(f"[Dry run] {group_id}: would add {plan.diff.to_add}, would remove {plan.diff.to_remove}")
        return planned

    def _reconcile_one(
        self,
        group_id: str,
        rows: list[RosterRow],
        excluded: set[str],
        now: datetime,
    ) -> SyncResult:
        try:
            return self.reconciler.reconcile_group(group_id, rows, excluded, now)
        except Exception as e:
            log_error(f"Reconciling {group_id} failed: {type(e).__name__}: {e}")
            raise

    def _reconcile_all(
        self,
        by_group: dict[str, list[RosterRow]],
        excluded: set[str],
        now: datetime,
    ) -> list[SyncResult]:
        """Reconcile every group, sequentially or on a bounded pool.

        With a pool, the first failure cancels every group task that has not
        started yet and is re-raised once running tasks finish.
        """
        if self.max_workers <= 1 or len(by_group) <= 1:
            return [
                self._reconcile_one(group_id, rows, excluded, now)
                for group_id, rows in by_group.items()
            ]

        workers = min(self.max_workers, len(by_group))
        log_debug(f"Reconciling groups on {workers} workers")
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reconcile") as executor:
            futures = [
                executor.submit(self._reconcile_one, group_id, rows, excluded, now)
                for group_id, rows in by_group.items()
            ]
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            failed = [f for f in futures if f in done and not f.cancelled() and f.exception() is not None]
            if failed:
                cancelled = sum(1 for f in futures if f.cancel())
                if cancelled:
                    log_warn(f"Cancelled {cancelled} pending group task(s) after failure")
                raise failed[0].exception()

            return [f.result() for f in futures]
