"""Log marker matching against captured indexer output."""

from reorg_harness.detection.log_watch import match_markers, matching_lines, wait_for
from reorg_harness.detection.markers import (
    DetectionKind,
    DetectionResult,
    Marker,
    PARENT_HASH_MARKERS,
    TIP_HASH_MARKERS,
)

__all__ = [
    "match_markers",
    "matching_lines",
    "wait_for",
    "DetectionKind",
    "DetectionResult",
    "Marker",
    "PARENT_HASH_MARKERS",
    "TIP_HASH_MARKERS",
]
