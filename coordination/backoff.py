"""
Exponential backoff and the shared wait budget for a run.

Both coordinator waits (maintenance flag, exclusive lock) draw from one
Deadline created at run start, so time spent in the first wait is not
available to the second.
"""

import time
from typing import Callable, Optional

# Defaults: 1s doubling to 30s, 3 minute ceiling per run
INITIAL_BACKOFF = 1.0
MAX_BACKOFF = 30.0
MAX_WAIT_SECONDS = 180.0


def calculate_delay(retry_count: int, base: float = INITIAL_BACKOFF, cap: float = MAX_BACKOFF) -> float:
    """
    Calculate the backoff delay for a retry attempt.

    Formula: min(cap, base * 2^retry_count). No jitter: the schedule is
    polled by a single worker, and deterministic delays keep logs reproducible.

    Args:
        retry_count: Number of waits already performed (0-indexed)
        base: Delay before the first retry, in seconds
        cap: Upper bound on any single delay, in seconds

    Returns:
        Delay in seconds
    """
    # Exponent bounded to avoid float overflow on very long waits
    return min(cap, base * (2 ** min(retry_count, 32)))


class Deadline:
    """
    Wall-clock budget measured from the original run start.

    Args:
        started_at: Clock reading taken when the run began
        ceiling: Total seconds allowed for all coordinator waits
        clock: Monotonic clock function (injectable for tests)
    """

    def __init__(
        self,
        started_at: float,
        ceiling: float = MAX_WAIT_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.started_at = started_at
        self.ceiling = ceiling
        self._clock = clock or time.monotonic

    @classmethod
    def start_now(cls, ceiling: float = MAX_WAIT_SECONDS, clock: Optional[Callable[[], float]] = None) -> "Deadline":
        clock = clock or time.monotonic
        return cls(clock(), ceiling, clock)

    def elapsed(self) -> float:
        return self._clock() - self.started_at

    def remaining(self) -> float:
        return max(0.0, self.ceiling - self.elapsed())

    def expired(self) -> bool:
        return self.elapsed() >= self.ceiling
