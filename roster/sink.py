"""
Result sink: makes a run's outcome visible to the humans maintaining the roster.

- membership refs of added members are written into the roster
- refs of removed members are cleared
- the settings store's last-operation time is updated, only when something changed
"""

from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from roster.models import RosterRow, SyncResult
from roster.settings_store import SettingsStore
from roster.store import RosterStore
from shared.log import create_logger

_, log_debug, log_info, _, _ = create_logger("Sink")


class RosterResultSink:
    """Publishes SyncResults back to the roster and settings stores.

    Args:
        roster_store: Store whose membership_ref column is updated
        settings_store: Store holding last_operation_at
        clock: Returns the current aware datetime (injectable for tests)
    """

    def __init__(
        self,
        roster_store: RosterStore,
        settings_store: SettingsStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.roster_store = roster_store
        self.settings_store = settings_store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def publish(
        self,
        results: Sequence[SyncResult],
        changed: bool,
        rows: Optional[Sequence[RosterRow]] = None,
    ) -> None:
        """
        Publish a run's results.

        Args:
            results: One SyncResult per reconciled group
            changed: True if any group added or removed a member
            rows: Rows loaded this run, used to locate cells for write-back
        """
        if rows:
            self.roster_store.write_back(rows, results)

        if changed:
            self.settings_store.write_last_operation(self._clock())
            log_info("Changes applied, last operation time recorded")
        else:
            log_info("All groups already in sync (no changes)")

        for result in results:
            if result.has_changes:
                log_debug(
                    f"{result.group_id}: added={result.added} removed={result.removed}"
                )
