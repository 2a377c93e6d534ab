"""
Validation module for Roster2Groups.

Provides configuration validation and the error taxonomy shared by the
coordinator, the directory client and the reconciliation engine.
"""

from validation.errors import (
    ConfigurationError,
    DirectoryError,
    GroupNotFoundError,
    LockTimeoutError,
    Roster2GroupsError,
    classify_exception,
    classify_http_error,
)
from validation.config import Roster2GroupsConfig, validate_config

__all__ = [
    'ConfigurationError',
    'DirectoryError',
    'GroupNotFoundError',
    'LockTimeoutError',
    'Roster2GroupsError',
    'classify_exception',
    'classify_http_error',
    'Roster2GroupsConfig',
    'validate_config',
]
