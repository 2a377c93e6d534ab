"""
Error taxonomy and HTTP error classification for Roster2Groups.

Fatal errors (propagate to the top-level caller, run aborts):
    ConfigurationError  -- required stores missing or unreadable
    LockTimeoutError    -- maintenance wait / lock acquisition exceeded ceiling
    GroupNotFoundError  -- a declared group does not resolve in the directory
    DirectoryError      -- directory listing failed (no trustworthy actual state)

Recoverable errors (single add/remove call): classified as TransientError or
PermanentError for logging only. The member is omitted from the run's
reported changes and picked up again on the next run.
"""

import logging
from typing import Optional, Type


class Roster2GroupsError(Exception):
    """Base class for all Roster2Groups errors."""


class ConfigurationError(Roster2GroupsError):
    """Required configuration or external store is missing or unreadable."""


class LockTimeoutError(Roster2GroupsError, TimeoutError):
    """Maintenance wait or lock acquisition exceeded the shared ceiling.

    Attributes:
        elapsed: Seconds elapsed since run start when the ceiling was hit
    """

    def __init__(self, message: str, elapsed: float = 0.0):
        super().__init__(message)
        self.elapsed = elapsed


class GroupNotFoundError(Roster2GroupsError):
    """Declared group identity does not resolve in the remote directory."""

    def __init__(self, group_id: str):
        super().__init__(f"Group not found: {group_id}")
        self.group_id = group_id


class DirectoryError(Roster2GroupsError):
    """Remote directory call failed in a way that leaves state unknown.

    Attributes:
        status_code: HTTP status if the failure carried a response, else None
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientError(Roster2GroupsError):
    """Retry-able errors (network, timeout, 429, 5xx)"""


class PermanentError(Roster2GroupsError):
    """Non-retry-able errors (4xx except 429)"""


# HTTP status codes that indicate transient (retry-able) errors
# 429: Rate limited - retry after backoff
# 5xx: Server errors - usually temporary
TRANSIENT_CODES = frozenset({429, 500, 502, 503, 504})

# HTTP status codes that indicate permanent (non-retry-able) errors
# 400: Bad request - malformed member key
# 401: Unauthorized - token expired or invalid
# 403: Forbidden - caller lacks group admin rights
# 404: Not found - group or membership doesn't exist
# 409: Conflict - membership already exists
# 412: Precondition failed - e.g. external member not allowed
PERMANENT_CODES = frozenset({400, 401, 403, 404, 409, 412})

# Module logger
logger = logging.getLogger("Roster2Groups.errors")


def classify_http_error(status_code: int) -> Type[Exception]:
    """
    Classify an HTTP status code as transient or permanent error.

    Args:
        status_code: HTTP response status code

    Returns:
        TransientError class for retry-able errors
        PermanentError class for non-retry-able errors
    """
    if status_code in TRANSIENT_CODES:
        logger.debug(f"HTTP {status_code} classified as transient")
        return TransientError

    if status_code in PERMANENT_CODES:
        logger.debug(f"HTTP {status_code} classified as permanent")
        return PermanentError

    if 400 <= status_code < 500:
        # Unknown 4xx = permanent (client error, unlikely to change)
        logger.debug(f"HTTP {status_code} (unknown 4xx) classified as permanent")
        return PermanentError

    # Unknown 5xx and unexpected codes = transient (safer)
    logger.debug(f"HTTP {status_code} classified as transient")
    return TransientError


def classify_exception(exc: Exception) -> Type[Exception]:
    """
    Classify an exception raised by a directory call as transient or permanent.

    Handles:
    - Already classified: Return same type
    - Exceptions carrying an HTTP response (httpx.HTTPStatusError): by status code
    - Network errors: Transient (ConnectionError, TimeoutError, OSError)
    - Validation errors: Permanent (ValueError, TypeError, KeyError)
    - Unknown: Transient

    Args:
        exc: The exception to classify

    Returns:
        TransientError or PermanentError class
    """
    if isinstance(exc, (TransientError, PermanentError)):
        return type(exc)

    if isinstance(exc, DirectoryError) and exc.status_code is not None:
        return classify_http_error(exc.status_code)

    response = getattr(exc, 'response', None)
    if response is not None:
        status_code = getattr(response, 'status_code', None)
        if status_code is not None:
            return classify_http_error(status_code)

    if isinstance(exc, (ConnectionError, TimeoutError, OSError)):
        return TransientError

    if isinstance(exc, (ValueError, TypeError, KeyError)):
        return PermanentError

    return TransientError


__all__ = [
    'Roster2GroupsError',
    'ConfigurationError',
    'LockTimeoutError',
    'GroupNotFoundError',
    'DirectoryError',
    'TransientError',
    'PermanentError',
    'classify_http_error',
    'classify_exception',
]
