"""Bounded waits for indexer log markers."""

import time
from typing import Callable, List, Optional, Sequence

from reorg_harness.detection.markers import NOT_DETECTED, DetectionResult, Marker
from reorg_harness.log import get_logger
from reorg_harness.runtime.polling import poll_until
from reorg_harness.runtime.process import OutputCapture

logger = get_logger(__name__)


def match_markers(markers: Sequence[Marker], content: str) -> Optional[DetectionResult]:
    """Check ``markers`` in priority order against ``content``.

    Returns:
        DetectionResult for the first marker that matches, or None
    """
    for marker in markers:
        line = marker.find(content)
        if line is not None:
            return DetectionResult(kind=marker.kind, marker=marker.text, line=line)
    return None


def wait_for(
    markers: Sequence[Marker],
    capture: OutputCapture,
    timeout: float,
    interval: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> DetectionResult:
    """Wait until one of ``markers`` appears in ``capture``.

    Each poll re-reads everything written since the capture's last reset
    and checks markers in order, so an exact marker wins over the generic
    fallback when both are present.

    Args:
        markers: Markers in priority order
        capture: Output capture to watch
        timeout: Wait budget in seconds
        interval: Poll cadence in seconds
        sleep: Sleep function (injectable for tests)

    Returns:
        The classification of the first match, or NOT_DETECTED on timeout
    """
    result = poll_until(
        lambda: match_markers(markers, capture.read()),
        timeout=timeout,
        interval=interval,
        sleep=sleep,
    )
    if result is None:
        logger.warning(f"No marker of {[m.text for m in markers]} within {timeout}s")
        return NOT_DETECTED

    logger.info(f"Matched {result.kind.value} marker {result.marker!r}: {result.line.strip()}")
    return result


def matching_lines(capture: OutputCapture, marker: Marker) -> List[str]:
    """All lines since the last reset that contain ``marker``."""
    return [line for line in capture.lines() if marker.find(line) is not None]
