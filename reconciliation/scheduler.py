"""
Run history and interval gating for scheduled invocations.

Roster2Groups is not a long-running service: cron (or any scheduler) starts
one process per run. Each run records a summary in sync_state.json, and
``run --if-due`` consults it to skip invocations that come too soon after
the previous run.
"""

import json
import os
import time
from dataclasses import dataclass, field, asdict
from typing import Optional

from shared.log import create_logger
_, log_debug, log_info, _, _ = create_logger("Scheduler")


@dataclass
class RunState:
    """Persisted summary of the most recent runs."""
    last_run_time: float = 0.0          # time.time() of last run
    last_success_time: float = 0.0      # time.time() of last run that completed
    last_groups_checked: int = 0
    last_rows_loaded: int = 0
    last_added: int = 0
    last_removed: int = 0
    last_changes_by_group: dict = field(default_factory=dict)  # {group: {added: N, removed: N}}
    last_error: str = ""                # empty when the last run succeeded
    run_count: int = 0
    failure_count: int = 0


class RunScheduler:
    """Manages run history and is_due checks via persisted state.

    NOT a timer/thread. Call is_due() at the start of an invocation.
    """

    STATE_FILE = 'sync_state.json'

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self.state_path = os.path.join(data_dir, self.STATE_FILE)

    def load_state(self) -> RunState:
        """Load run state from disk."""
        try:
            if os.path.exists(self.state_path):
                with open(self.state_path, 'r') as f:
                    data = json.load(f)
                return RunState(**data)
        except (json.JSONDecodeError, TypeError, KeyError) as e:
            log_debug(f"Failed to load run state, using defaults: {e}")
        return RunState()

    def save_state(self, state: RunState) -> None:
        """Save run state to disk atomically."""
        tmp_path = self.state_path + '.tmp'
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            with open(tmp_path, 'w') as f:
                json.dump(asdict(state), f, indent=2)
            os.replace(tmp_path, self.state_path)
        except OSError as e:
            log_debug(f"Failed to save run state: {e}")

    def is_due(self, min_interval_minutes: int, now: Optional[float] = None) -> bool:
        """Check if a run is due based on the minimum interval and last run time.

        Args:
            min_interval_minutes: Minimum minutes between runs (0 = always due)
            now: Current time (default: time.time()). For testing.

        Returns:
            True if the run should go ahead.
        """
        if min_interval_minutes <= 0:
            return True

        if now is None:
            now = time.time()

        state = self.load_state()
        if state.last_run_time == 0.0:
            return True  # Never run before

        elapsed = now - state.last_run_time
        return elapsed >= min_interval_minutes * 60

    def record_run(self, report, now: Optional[float] = None) -> None:
        """Record a completed run.

        Args:
            report: RunReport from RunOrchestrator.run()
            now: Current time (default: time.time()). For testing.
        """
        now = time.time() if now is None else now
        state = self.load_state()
        state.last_run_time = now
        state.last_success_time = now
        state.last_groups_checked = report.groups_checked
        state.last_rows_loaded = report.rows_loaded
        state.last_added = report.total_added
        state.last_removed = report.total_removed
        state.last_changes_by_group = {
            r.group_id: {'added': len(r.added), 'removed': len(r.removed)}
            for r in report.results
            if r.has_changes
        }
        state.last_error = ""
        state.run_count += 1
        self.save_state(state)

    def record_failure(self, error: Exception, now: Optional[float] = None) -> None:
        """Record a run that ended with a fatal error."""
        state = self.load_state()
        state.last_run_time = time.time() if now is None else now
        state.last_error = f"{type(error).__name__}: {error}"
        state.run_count += 1
        state.failure_count += 1
        self.save_state(state)
        log_info(f"Recorded failed run #{state.run_count}")
