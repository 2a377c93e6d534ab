"""
Maintenance flag: the cooperative "a human is working, do not run" signal.

The flag lives in the settings store next to the last-operation timestamp.
It is advisory only; the hard guard against concurrent automated runs is the
exclusive lock in coordination.lock.
"""

from typing import Any, Protocol

from shared.log import create_logger

log_trace, _, _, _, _ = create_logger("Maintenance")

TRUTHY_STRINGS = frozenset({'ON', 'TRUE', '1'})


class PauseSignal(Protocol):
    """Anything that can report whether automated runs should pause."""

    def is_paused(self) -> bool:
        ...


def is_flag_set(value: Any) -> bool:
    """Interpret a raw flag value.

    Strings are trimmed and compared upper-cased against ON / TRUE / 1.
    Any other value (bool, number, None) uses its truthiness.

    Args:
        value: Raw value read from the settings store

    Returns:
        True if the flag means "paused"
    """
    if isinstance(value, str):
        return value.strip().upper() in TRUTHY_STRINGS
    return bool(value)


class SettingsMaintenanceFlag:
    """PauseSignal backed by the settings store's maintenance flag.

    Args:
        settings_store: SettingsStore to read from. Each call re-reads the
                        file; the flag is never cached.
    """

    def __init__(self, settings_store):
        self.settings_store = settings_store

    def is_paused(self) -> bool:
        value = self.settings_store.read_maintenance_flag()
        paused = is_flag_set(value)
        log_trace(f"Maintenance flag value={value!r} paused={paused}")
        return paused
