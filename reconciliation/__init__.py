"""Reconciliation package: desired-state diffing, run orchestration and run history."""
from reconciliation.engine import (
    GroupPlan,
    MembershipReconciler,
    compute_desired_state,
    diff,
    group_rows,
)
from reconciliation.orchestrator import RunOrchestrator, RunReport
from reconciliation.scheduler import RunScheduler, RunState

__all__ = [
    'GroupPlan',
    'MembershipReconciler',
    'compute_desired_state',
    'diff',
    'group_rows',
    'RunOrchestrator',
    'RunReport',
    'RunScheduler',
    'RunState',
]
