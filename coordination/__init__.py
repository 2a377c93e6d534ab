"""Run coordination: maintenance flag, exclusive lock, shared backoff budget."""
from coordination.backoff import Deadline, calculate_delay
from coordination.coordinator import ExclusionCoordinator
from coordination.lock import FileLock, LockHandle, MutualExclusion
from coordination.maintenance import PauseSignal, SettingsMaintenanceFlag, is_flag_set

__all__ = [
    'Deadline',
    'calculate_delay',
    'ExclusionCoordinator',
    'FileLock',
    'LockHandle',
    'MutualExclusion',
    'PauseSignal',
    'SettingsMaintenanceFlag',
    'is_flag_set',
]
