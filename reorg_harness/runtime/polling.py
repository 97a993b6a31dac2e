"""Bounded polling primitives shared by readiness checks and log assertions."""

import time
from enum import Enum
from typing import Callable, Optional, TypeVar

from reorg_harness.log import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class Readiness(str, Enum):
    """Outcome of a readiness probe."""
    READY = "ready"
    TIMED_OUT = "timed_out"


def poll_until(
    probe: Callable[[], Optional[T]],
    timeout: float,
    interval: float,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Optional[T]:
    """Call ``probe`` until it returns a truthy value or ``timeout`` elapses.

    The probe runs once immediately and then once per ``interval``. The
    sleep before the final poll is clipped to the deadline, so the call
    returns no later than ``timeout`` plus one interval.

    Args:
        probe: Callable returning a truthy value on success
        timeout: Total wait budget in seconds
        interval: Delay between polls in seconds
        sleep: Sleep function (injectable for tests)
        clock: Monotonic clock (injectable for tests)

    Returns:
        The first truthy probe result, or None on timeout
    """
    if interval <= 0:
        raise ValueError("interval must be > 0")

    deadline = clock() + timeout
    while True:
        result = probe()
        if result:
            return result
        remaining = deadline - clock()
        if remaining <= 0:
            return None
        sleep(min(interval, remaining))


def await_ready(
    check: Callable[[], bool],
    max_attempts: int,
    interval: float,
    name: str = "dependency",
    sleep: Callable[[float], None] = time.sleep,
) -> Readiness:
    """Probe ``check`` up to ``max_attempts`` times.

    A check that raises counts as a failed attempt.

    Args:
        check: Callable returning True once the dependency is usable
        max_attempts: Attempt budget
        interval: Delay between attempts in seconds
        name: Dependency name for log messages
        sleep: Sleep function (injectable for tests)

    Returns:
        Readiness.READY on the first success, Readiness.TIMED_OUT otherwise
    """
    for attempt in range(1, max_attempts + 1):
        try:
            if check():
                logger.info(f"{name} ready (attempt {attempt}/{max_attempts})")
                return Readiness.READY
        except Exception as e:
            logger.debug(f"{name} readiness check raised (attempt {attempt}/{max_attempts}): {e}")

        if attempt < max_attempts:
            sleep(interval)

    logger.warning(f"{name} not ready after {max_attempts} attempts")
    return Readiness.TIMED_OUT
