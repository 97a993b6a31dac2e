"""Post-reorg storage recovery checks driven by indexer log markers."""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Set

from reorg_harness.detection.markers import CHECKPOINT_REWOUND, EVENTS_DELETED, RECOVERY_MARKERS, Marker
from reorg_harness.log import get_logger
from reorg_harness.runtime.polling import poll_until
from reorg_harness.runtime.process import OutputCapture

logger = get_logger(__name__)


class RecoveryOutcome(str, Enum):
    FULL = "full"
    PARTIAL = "partial"
    NONE = "none"
    SKIPPED = "skipped"


@dataclass
class RecoveryCheckResult:
    """Which recovery steps the indexer reported.

    Attributes:
        events_deleted: Orphaned events were deleted
        checkpoint_rewound: Sync checkpoint was rewound
        skipped: The check could not run
        reason: Why the check was skipped
    """
    events_deleted: bool = False
    checkpoint_rewound: bool = False
    skipped: bool = False
    reason: Optional[str] = None

    @classmethod
    def skip(cls, reason: str) -> "RecoveryCheckResult":
        return cls(skipped=True, reason=reason)

    @property
    def outcome(self) -> RecoveryOutcome:
        if self.skipped:
            return RecoveryOutcome.SKIPPED
        if self.events_deleted and self.checkpoint_rewound:
            return RecoveryOutcome.FULL
        if self.events_deleted or self.checkpoint_rewound:
            return RecoveryOutcome.PARTIAL
        return RecoveryOutcome.NONE

    @property
    def passed(self) -> bool:
        return self.outcome is RecoveryOutcome.FULL


def verify_recovery(
    capture: OutputCapture,
    timeout: float,
    interval: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> RecoveryCheckResult:
    """Wait for both recovery markers to appear in ``capture``.

    Markers are tracked independently; one seen on an earlier poll stays
    seen.

    Args:
        capture: Output capture of the storage-backed indexer
        timeout: Wait budget in seconds
        interval: Poll cadence in seconds
        sleep: Sleep function (injectable for tests)

    Returns:
        RecoveryCheckResult with the markers that were observed
    """
    seen: Set[Marker] = set()

    def probe() -> bool:
        content = capture.read()
        for marker in RECOVERY_MARKERS:
            if marker not in seen and marker.find(content) is not None:
                logger.info(f"Recovery marker observed: {marker.text!r}")
                seen.add(marker)
        return len(seen) == len(RECOVERY_MARKERS)

    poll_until(probe, timeout=timeout, interval=interval, sleep=sleep)

    result = RecoveryCheckResult(
        events_deleted=EVENTS_DELETED in seen,
        checkpoint_rewound=CHECKPOINT_REWOUND in seen,
    )
    if result.outcome is not RecoveryOutcome.FULL:
        logger.warning(
            f"Recovery incomplete after {timeout}s: events_deleted={result.events_deleted} "
            f"checkpoint_rewound={result.checkpoint_rewound}"
        )
    return result
