"""
Exclusive run lock backed by fcntl.flock.

The lock file sits next to the roster (``<roster>.lock``), so the lock is
scoped to one roster: runs against different rosters never block each other.
flock is held per open file description, so two handles in the same process
exclude each other just like two processes do.
"""

import fcntl
import os
from typing import Optional, Protocol

from shared.log import create_logger

log_trace, log_debug, log_info, log_warn, _ = create_logger("Lock")


class LockHandle:
    """Ownership of an acquired lock.

    release() is idempotent: the first call unlocks and closes the lock file,
    later calls are no-ops.
    """

    def __init__(self, lock_file, path: str):
        self._lock_file = lock_file
        self.path = path

    @property
    def held(self) -> bool:
        return self._lock_file is not None

    def release(self) -> None:
        if self._lock_file is None:
            return

        lock_file, self._lock_file = self._lock_file, None
        try:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            log_warn(f"Failed to unlock {self.path}: {e}")
        finally:
            lock_file.close()
        log_info(f"Released run lock {self.path}")

    def __enter__(self) -> "LockHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class MutualExclusion(Protocol):
    """Anything offering a single non-blocking lock attempt."""

    def try_acquire(self) -> Optional[LockHandle]:
        ...


class FileLock:
    """
    Non-blocking exclusive lock on a lock file.

    Args:
        path: Lock file path. Created on first use, never deleted (deleting
              a lock file another process holds would split the lock).
    """

    def __init__(self, path: str):
        self.path = path

    @classmethod
    def for_roster(cls, roster_path: str) -> "FileLock":
        return cls(os.path.abspath(roster_path) + '.lock')

    def try_acquire(self) -> Optional[LockHandle]:
        """
        Make one attempt to take the lock.

        Returns:
            LockHandle if acquired, None if another holder has it.

        Raises:
            OSError: Lock file cannot be opened (permissions, missing directory).
        """
        lock_file = open(self.path, 'a')
        try:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            lock_file.close()
            log_trace(f"Run lock {self.path} is held elsewhere")
            return None
        except OSError:
            lock_file.close()
            raise

        log_debug(f"Acquired run lock {self.path}")
        return LockHandle(lock_file, self.path)
