"""
Membership reconciliation engine.

Pure set logic (compute_desired_state, diff) plus MembershipReconciler, which
applies the diff for one group against the remote directory.

Each call is a fresh convergence pass: actual state is fetched from the
directory inside the same call that diffs against it, and nothing is kept
between runs. A member whose add/remove failed is left out of the result and
shows up in the diff again on the next run.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, TYPE_CHECKING

from roster.models import DiffResult, RosterRow, SyncResult
from validation.errors import GroupNotFoundError
from shared.log import create_logger

if TYPE_CHECKING:
    from directory.client import DirectoryClient

_, log_debug, log_info, log_warn, log_error = create_logger("Engine")


def compute_desired_state(
    rows: Iterable[RosterRow],
    now: datetime,
    excluded: set[str],
) -> set[str]:
    """Members that should belong to the group at ``now``.

    A row contributes its member iff the member is not excluded and
    valid_from <= now <= valid_to (both ends inclusive). Overlapping or
    duplicate rows for one member simply union.

    Args:
        rows: Roster rows for a single group
        now: Reference time (timezone-aware)
        excluded: Identities never targeted by automation

    Returns:
        Set of member ids
    """
    return {
        row.member_id
        for row in rows
        if row.member_id not in excluded and row.is_active(now)
    }


def diff(desired: set[str], actual: set[str]) -> DiffResult:
    """Changes that turn ``actual`` into ``desired``.

    to_add = desired - actual, to_remove = actual - desired. Both lists are
    sorted so logs and results are reproducible.
    """
    return DiffResult(
        to_add=sorted(desired - actual),
        to_remove=sorted(actual - desired),
    )


@dataclass
class GroupPlan:
    """Resolved group handle and the diff computed against a fresh snapshot."""
    group_id: str
    group_name: str
    diff: DiffResult


class MembershipReconciler:
    """Reconciles one group at a time against the remote directory.

    Args:
        directory: DirectoryClient (or any object with resolve_group,
                   list_members, add_member, remove_member)
    """

    def __init__(self, directory: "DirectoryClient"):
        self.directory = directory

    def plan_group(
        self,
        group_id: str,
        rows: list[RosterRow],
        excluded: set[str],
        now: datetime,
    ) -> GroupPlan:
        """
        Resolve the group, read its members and compute the diff.

        Raises:
            GroupNotFoundError: Group does not resolve in the directory
            DirectoryError: Listing members failed
        """
        group_name = self.directory.resolve_group(group_id)
        if not group_name:
            log_error(f"Group not found in directory: {group_id}")
            raise GroupNotFoundError(group_id)

        current = self.directory.list_members(group_name)
        actual = {m.member_id for m in current if m.member_id not in excluded}
        desired = compute_desired_state(rows, now, excluded)

        planned = diff(desired, actual)
        log_debug(
            f"{group_id}: desired={len(desired)} actual={len(actual)} "
            f"to_add={len(planned.to_add)} to_remove={len(planned.to_remove)}"
        )
        return GroupPlan(group_id=group_id, group_name=group_name, diff=planned)

    def apply_plan(self, plan: GroupPlan) -> SyncResult:
        """Apply a plan and report only the changes that succeeded."""
        result = SyncResult(group_id=plan.group_id)

        for member_id in plan.diff.to_add:
            membership = self.directory.add_member(plan.group_name, member_id)
            if membership is None:
                log_warn(f"{plan.group_id}: add {member_id} failed, will retry next run")
                continue
            result.added.append(member_id)
            if membership.membership_ref:
                result.added_refs[member_id] = membership.membership_ref

        for member_id in plan.diff.to_remove:
            if self.directory.remove_member(plan.group_name, member_id):
                result.removed.append(member_id)
            else:
                log_warn(f"{plan.group_id}: remove {member_id} failed, will retry next run")

        return result

    def reconcile_group(
        self,
        group_id: str,
        rows: list[RosterRow],
        excluded: set[str],
        now: datetime,
    ) -> SyncResult:
        """
        Bring one group's membership in line with its roster rows.

        Execution steps:
            1. Resolve group (GroupNotFoundError aborts the run)
            2. List members, dropping excluded identities
            3. Compute desired state and diff
            4. Add missing members, keeping successes only
            5. Remove extra members; "already absent" counts as success
            6. Return what actually changed

        Args:
            group_id: Group identity from the roster
            rows: Roster rows for this group
            excluded: Identities never targeted by automation
            now: Reference time for validity windows

        Returns:
            SyncResult with actual changes
        """
        log_info(f"Reconciling group {group_id} ({len(rows)} rows)")
        plan = self.plan_group(group_id, rows, excluded, now)
        if plan.diff.is_empty:
            log_info(f"{group_id}: already in sync")
            return SyncResult(group_id=group_id)

        result = self.apply_plan(plan)
        log_info(
            f"{group_id}: added {len(result.added)}/{len(plan.diff.to_add)}, "
            f"removed {len(result.removed)}/{len(plan.diff.to_remove)}"
        )
        return result


def group_rows(rows: Iterable[RosterRow]) -> dict[str, list[RosterRow]]:
    """Partition rows by group_id, preserving first-seen group order and row order."""
    by_group: dict[str, list[RosterRow]] = {}
    for row in rows:
        by_group.setdefault(row.group_id, []).append(row)
    return by_group


def any_changes(results: Iterable[SyncResult]) -> bool:
    return any(r.has_changes for r in results)
