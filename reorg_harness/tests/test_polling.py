"""Tests for the bounded polling primitives."""

from unittest.mock import Mock

import pytest

from reorg_harness.errors import HarnessInterrupted
from reorg_harness.runtime.polling import Readiness, await_ready, poll_until


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def test_poll_until_returns_first_truthy_value():
    """Test the first truthy probe result is returned immediately."""
    clock = FakeClock()
    probe = Mock(side_effect=[None, False, "found", "later"])

    result = poll_until(probe, timeout=10, interval=0.5, sleep=clock.sleep, clock=clock)

    assert result == "found"
    assert probe.call_count == 3
    assert clock.sleeps == [0.5, 0.5]


def test_poll_until_respects_timeout_bound():
    """Test a failing probe gives up no later than timeout plus one interval."""
    clock = FakeClock()

    result = poll_until(lambda: False, timeout=1.0, interval=0.3, sleep=clock.sleep, clock=clock)

    assert result is None
    assert clock.now <= 1.0 + 0.3
    assert all(s <= 0.3 for s in clock.sleeps)


def test_poll_until_zero_timeout_polls_once():
    """Test a zero budget still checks once."""
    clock = FakeClock()
    probe = Mock(return_value=False)

    assert poll_until(probe, timeout=0, interval=0.5, sleep=clock.sleep, clock=clock) is None
    assert probe.call_count == 1
    assert clock.sleeps == []


def test_poll_until_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        poll_until(lambda: True, timeout=1, interval=0)


def test_await_ready_succeeds_after_retries():
    """Test readiness is reported on the first successful attempt."""
    sleep = Mock()
    check = Mock(side_effect=[False, False, True])

    assert await_ready(check, max_attempts=5, interval=0.5, sleep=sleep) is Readiness.READY
    assert check.call_count == 3
    assert sleep.call_count == 2


def test_await_ready_counts_exceptions_as_failures():
    """Test a raising check is retried rather than propagated."""
    sleep = Mock()
    check = Mock(side_effect=[ConnectionError("refused"), True])

    assert await_ready(check, max_attempts=3, interval=0.1, sleep=sleep) is Readiness.READY
    assert check.call_count == 2


def test_await_ready_times_out_after_budget():
    """Test the attempt budget is honored exactly."""
    sleep = Mock()
    check = Mock(return_value=False)

    assert await_ready(check, max_attempts=4, interval=0.1, sleep=sleep) is Readiness.TIMED_OUT
    assert check.call_count == 4
    # No sleep after the last attempt
    assert sleep.call_count == 3


def test_await_ready_propagates_interrupt():
    """Test a SIGTERM landing inside a check is not counted as a failed attempt."""
    sleep = Mock()
    check = Mock(side_effect=HarnessInterrupted("Received signal 15"))

    with pytest.raises(HarnessInterrupted):
        await_ready(check, max_attempts=3, interval=0.01, name="ClickHouse", sleep=sleep)
    assert check.call_count == 1
    sleep.assert_not_called()
