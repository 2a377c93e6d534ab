"""
Exclusion coordinator: cooperative pause flag + hard run lock.

Two tiers, acquired in order:
1. Maintenance flag (PauseSignal) - a human-controlled pause switch. The run
   waits for it to clear.
2. Run lock (MutualExclusion) - stops two automated runs from mutating the
   directory at the same time.

Both waits poll with exponential backoff and share one Deadline started when
the run began. Crossing the ceiling raises LockTimeoutError.
"""

import time
from typing import Callable, Optional

from coordination.backoff import (
    INITIAL_BACKOFF,
    MAX_BACKOFF,
    Deadline,
    calculate_delay,
)
from coordination.lock import LockHandle, MutualExclusion
from coordination.maintenance import PauseSignal
from validation.errors import LockTimeoutError
from shared.log import create_logger

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Coordinator")


class ExclusionCoordinator:
    """
    Acquire the right to run against one roster.

    Args:
        pause_signal: Source of the maintenance flag
        mutex: Source of the exclusive run lock
        initial_backoff: First polling delay in seconds (default: 1.0)
        max_backoff: Largest polling delay in seconds (default: 30.0)
        sleep: Sleep function (injectable for tests)

    Usage:
        deadline = Deadline.start_now(ceiling=180.0)
        coordinator.wait_until_maintenance_clear(deadline)
        handle = coordinator.acquire_exclusive_lock(deadline)
        try:
            ...
        finally:
            handle.release()
    """

    def __init__(
        self,
        pause_signal: PauseSignal,
        mutex: MutualExclusion,
        initial_backoff: float = INITIAL_BACKOFF,
        max_backoff: float = MAX_BACKOFF,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.pause_signal = pause_signal
        self.mutex = mutex
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self._sleep = sleep or time.sleep

    def check_maintenance_flag(self) -> bool:
        """Fresh read of the maintenance flag. True means "do not run"."""
        return self.pause_signal.is_paused()

    def wait_until_maintenance_clear(self, deadline: Deadline) -> None:
        """
        Block until the maintenance flag is clear.

        Args:
            deadline: Shared budget started at run start

        Raises:
            LockTimeoutError: Flag still set once the ceiling is reached
        """
        retry = 0
        while self.check_maintenance_flag():
            elapsed = deadline.elapsed()
            if elapsed >= deadline.ceiling:
                log_error(f"Maintenance flag still set after {elapsed:.1f}s, giving up")
                raise LockTimeoutError(
                    f"Maintenance wait timed out ({deadline.ceiling:.0f}s elapsed)",
                    elapsed=elapsed,
                )

            delay = min(calculate_delay(retry, self.initial_backoff, self.max_backoff), deadline.remaining())
            log_info(f"Maintenance flag is set, waiting {delay:.1f}s (elapsed {elapsed:.1f}s)")
            self._sleep(delay)
            retry += 1

        if retry:
            log_info(f"Maintenance flag cleared after {deadline.elapsed():.1f}s")

    def acquire_exclusive_lock(self, deadline: Deadline) -> LockHandle:
        """
        Take the run lock, retrying with backoff inside the shared budget.

        Args:
            deadline: Shared budget started at run start (not at this call)

        Returns:
            LockHandle; the caller must release() it.

        Raises:
            LockTimeoutError: Lock not acquired before the ceiling
        """
        retry = 0
        while not deadline.expired():
            handle = self.mutex.try_acquire()
            if handle is not None:
                log_info(f"Run lock acquired after {retry + 1} attempt(s)")
                return handle

            delay = min(calculate_delay(retry, self.initial_backoff, self.max_backoff), deadline.remaining())
            log_debug(f"Run lock busy, retrying in {delay:.1f}s")
            self._sleep(delay)
            retry += 1

        elapsed = deadline.elapsed()
        log_error(f"Run lock not acquired after {retry} attempt(s), {elapsed:.1f}s elapsed")
        raise LockTimeoutError(
            f"Could not acquire run lock ({deadline.ceiling:.0f}s elapsed)",
            elapsed=elapsed,
        )
