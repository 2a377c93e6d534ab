"""
Unit tests for the coordinator backoff schedule and shared deadline.

Tests verify:
- Delay doubles from the base and never exceeds the cap
- Very large retry counts do not overflow
- Deadline measures elapsed time from run start, not from creation of a wait
"""

import pytest

from coordination.backoff import (
    INITIAL_BACKOFF,
    MAX_BACKOFF,
    MAX_WAIT_SECONDS,
    Deadline,
    calculate_delay,
)


class TestCalculateDelay:
    """Tests for calculate_delay function."""

    def test_defaults(self):
        assert INITIAL_BACKOFF == 1.0
        assert MAX_BACKOFF == 30.0
        assert MAX_WAIT_SECONDS == 180.0

    @pytest.mark.parametrize("retry,expected", [
        (0, 1.0),
        (1, 2.0),
        (2, 4.0),
        (3, 8.0),
        (4, 16.0),
        (5, 30.0),
        (6, 30.0),
    ])
    def test_default_schedule(self, retry, expected):
        """1s doubling, capped at 30s."""
        assert calculate_delay(retry) == expected

    def test_custom_base_and_cap(self):
        assert calculate_delay(0, base=0.5, cap=3.0) == 0.5
        assert calculate_delay(2, base=0.5, cap=3.0) == 2.0
        assert calculate_delay(3, base=0.5, cap=3.0) == 3.0

    def test_huge_retry_count_stays_at_cap(self):
        """Exponent is bounded so 2**retry never overflows."""
        assert calculate_delay(10_000) == MAX_BACKOFF

    def test_never_exceeds_cap(self):
        for retry in range(50):
            assert calculate_delay(retry, base=1.0, cap=30.0) <= 30.0


class TestDeadline:
    """Tests for the shared wait budget."""

    def test_elapsed_and_remaining(self, fake_clock):
        deadline = Deadline.start_now(ceiling=180.0, clock=fake_clock)
        fake_clock.sleep(45.0)

        assert deadline.elapsed() == 45.0
        assert deadline.remaining() == 135.0
        assert deadline.expired() is False

    def test_expired_exactly_at_ceiling(self, fake_clock):
        deadline = Deadline.start_now(ceiling=180.0, clock=fake_clock)
        fake_clock.sleep(180.0)

        assert deadline.expired() is True
        assert deadline.remaining() == 0.0

    def test_remaining_never_negative(self, fake_clock):
        deadline = Deadline.start_now(ceiling=10.0, clock=fake_clock)
        fake_clock.sleep(25.0)

        assert deadline.remaining() == 0.0

    def test_started_at_is_preserved(self, fake_clock):
        """A Deadline built from an earlier start keeps counting from that start."""
        started = fake_clock()
        fake_clock.sleep(100.0)
        deadline = Deadline(started, ceiling=180.0, clock=fake_clock)

        assert deadline.elapsed() == 100.0
        assert deadline.remaining() == 80.0
