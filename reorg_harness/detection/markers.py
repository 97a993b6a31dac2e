"""Log markers emitted by the indexer and how a match is classified."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


class DetectionKind(str, Enum):
    """Classification of a log assertion."""
    NOT_DETECTED = "not_detected"
    EXACT = "exact"
    GENERIC = "generic"


@dataclass(frozen=True)
class Marker:
    """A substring to look for in the capture.

    Attributes:
        text: Substring to match
        kind: Classification reported when it matches
        case_sensitive: Literal match when True, case-folded otherwise
    """
    text: str
    kind: DetectionKind
    case_sensitive: bool = True

    def find(self, content: str) -> Optional[str]:
        """Return the first line of ``content`` containing this marker."""
        needle = self.text if self.case_sensitive else self.text.lower()
        for line in content.splitlines():
            haystack = line if self.case_sensitive else line.lower()
            if needle in haystack:
                return line
        return None


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of waiting for a marker."""
    kind: DetectionKind
    marker: Optional[str] = None
    line: Optional[str] = None

    @property
    def detected(self) -> bool:
        return self.kind is not DetectionKind.NOT_DETECTED

    @property
    def exact(self) -> bool:
        return self.kind is DetectionKind.EXACT


NOT_DETECTED = DetectionResult(DetectionKind.NOT_DETECTED)

GENERIC_REORG = Marker("REORG", DetectionKind.GENERIC, case_sensitive=False)

TIP_HASH_CHANGED = Marker("tip hash changed", DetectionKind.EXACT)
PARENT_HASH_MISMATCH = Marker("parent hash mismatch", DetectionKind.EXACT)

# Exact markers first, the generic fallback last.
TIP_HASH_MARKERS: List[Marker] = [TIP_HASH_CHANGED, GENERIC_REORG]
PARENT_HASH_MARKERS: List[Marker] = [PARENT_HASH_MISMATCH, GENERIC_REORG]

STORAGE_BACKEND_NAME = "ClickHouse"
EVENTS_DELETED = Marker(f"{STORAGE_BACKEND_NAME}: deleted events from block", DetectionKind.EXACT)
CHECKPOINT_REWOUND = Marker(f"{STORAGE_BACKEND_NAME}: checkpoint rewound to block", DetectionKind.EXACT)
RECOVERY_MARKERS: Tuple[Marker, Marker] = (EVENTS_DELETED, CHECKPOINT_REWOUND)
