"""
JSON settings store shared with human operators.

    {
      "maintenance": "OFF",
      "last_operation_at": "2025-06-15T09:00:00+00:00"
    }

Operators flip "maintenance" to pause automated runs. Roster2Groups writes
"last_operation_at" when a run actually changed membership. Every read goes
to disk; nothing is cached.
"""

import json
import os
from datetime import datetime
from typing import Any, Optional

from validation.errors import ConfigurationError
from shared.log import create_logger

_, log_debug, log_info, _, _ = create_logger("Settings")

MAINTENANCE_KEY = 'maintenance'
LAST_OPERATION_KEY = 'last_operation_at'
WRITE_ATTEMPTS = 3


class SettingsStore:
    """Read/write access to the settings JSON file.

    Args:
        path: Path to the settings file
    """

    def __init__(self, path: str):
        self.path = path

    def load(self) -> dict[str, Any]:
        """Load the whole settings document.

        Raises:
            ConfigurationError: File missing, unreadable or not a JSON object
        """
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Settings store not found: {self.path}") from e
        except (json.JSONDecodeError, OSError) as e:
            raise ConfigurationError(f"Settings store unreadable ({self.path}): {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings store {self.path} must hold a JSON object")
        return data

    def read_maintenance_flag(self) -> Any:
        """Raw maintenance flag value (None if the key is absent)."""
        return self.load().get(MAINTENANCE_KEY)

    def read_last_operation(self) -> Optional[datetime]:
        value = self.load().get(LAST_OPERATION_KEY)
        if not value:
            return None
        try:
            return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except ValueError:
            log_debug(f"Ignoring unparseable {LAST_OPERATION_KEY}: {value!r}")
            return None

    def write_last_operation(self, when: datetime) -> None:
        """Record the time of the last run that changed membership.

        Other keys (including the maintenance flag) are preserved. Operators
        edit this file without taking the run lock, so the document is re-read
        after the tmp file is written; if it changed in the meantime the update
        is rebuilt from the newer content before the replace.
        """
        stamp = when.isoformat()
        tmp_path = self.path + '.tmp'

        data = self._stamped(stamp)
        for _ in range(WRITE_ATTEMPTS):
            self._write_tmp(tmp_path, data)
            latest = self._stamped(stamp)
            if latest == data:
                break
            log_debug("Settings changed during update, merging newer content")
            data = latest
        else:
            self._write_tmp(tmp_path, data)

        os.replace(tmp_path, self.path)
        log_info(f"Last operation time updated: {stamp}")

    def _stamped(self, stamp: str) -> dict[str, Any]:
        data = self.load()
        data[LAST_OPERATION_KEY] = stamp
        return data

    def _write_tmp(self, tmp_path: str, data: dict[str, Any]) -> None:
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
