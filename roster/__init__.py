"""Roster package: declared memberships, settings store and result publishing."""
from roster.excluded import ExcludedMembers
from roster.models import DiffResult, RosterRow, SyncResult
from roster.settings_store import SettingsStore
from roster.sink import RosterResultSink
from roster.store import RosterStore, parse_timestamp

__all__ = [
    'ExcludedMembers',
    'DiffResult',
    'RosterRow',
    'SyncResult',
    'SettingsStore',
    'RosterResultSink',
    'RosterStore',
    'parse_timestamp',
]
