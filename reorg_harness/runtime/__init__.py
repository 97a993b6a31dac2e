"""Process supervision and bounded polling."""

from reorg_harness.runtime.best_effort import BestEffortResult, best_effort
from reorg_harness.runtime.polling import Readiness, await_ready, poll_until
from reorg_harness.runtime.process import (
    ManagedProcess,
    OutputCapture,
    ProcessSpec,
    ProcessSupervisor,
)

__all__ = [
    "BestEffortResult",
    "best_effort",
    "Readiness",
    "await_ready",
    "poll_until",
    "ManagedProcess",
    "OutputCapture",
    "ProcessSpec",
    "ProcessSupervisor",
]
