"""Tests for log marker detection."""

import threading
import time
from unittest.mock import Mock

from reorg_harness.detection.log_watch import match_markers, matching_lines, wait_for
from reorg_harness.detection.markers import (
    GENERIC_REORG,
    PARENT_HASH_MARKERS,
    TIP_HASH_MARKERS,
    DetectionKind,
)


def test_exact_tip_hash_marker(capture, write_log):
    """Test the tip-hash diagnostic is classified as an exact match."""
    write_log("WARN rindexer: polygon - tip hash changed detected at block 104\n")

    result = wait_for(TIP_HASH_MARKERS, capture, timeout=1, interval=0.05)

    assert result.kind is DetectionKind.EXACT
    assert result.exact
    assert result.marker == "tip hash changed"
    assert "block 104" in result.line


def test_generic_marker_only_is_generic_not_missing(capture, write_log):
    """Test a capture with only the fallback marker is DetectedGeneric."""
    write_log("WARN rindexer: ReorgToken::Transfer - REORG detected, rolling back 3 blocks\n")

    for markers in (TIP_HASH_MARKERS, PARENT_HASH_MARKERS):
        result = wait_for(markers, capture, timeout=1, interval=0.05)
        assert result.kind is DetectionKind.GENERIC
        assert result.detected
        assert not result.exact


def test_generic_marker_is_case_insensitive(capture, write_log):
    write_log("warn: possible reorg at block 99\n")

    result = wait_for(PARENT_HASH_MARKERS, capture, timeout=1, interval=0.05)

    assert result.kind is DetectionKind.GENERIC


def test_exact_marker_wins_over_generic(capture, write_log):
    """Test exact markers take priority regardless of line order."""
    write_log("WARN REORG detected on polygon\n")
    write_log("WARN parent hash mismatch at block 105: cached 0xaa, got 0xbb\n")

    result = wait_for(PARENT_HASH_MARKERS, capture, timeout=1, interval=0.05)

    assert result.kind is DetectionKind.EXACT
    assert result.marker == "parent hash mismatch"


def test_exact_marker_is_case_sensitive():
    """Test exact markers do not match with different casing."""
    result = match_markers(TIP_HASH_MARKERS, "WARN TIP HASH CHANGED (reorg)")

    assert result.kind is DetectionKind.GENERIC


def test_other_path_marker_counts_as_generic():
    """Test the parent-hash diagnostic in the tip-hash scenario is only generic."""
    result = match_markers(TIP_HASH_MARKERS, "WARN parent hash mismatch, reorg detected")

    assert result.kind is DetectionKind.GENERIC


def test_not_detected_within_bound(capture):
    """Test an empty capture times out no later than timeout plus one interval."""
    started = time.monotonic()

    result = wait_for(TIP_HASH_MARKERS, capture, timeout=0.3, interval=0.1)

    elapsed = time.monotonic() - started
    assert result.kind is DetectionKind.NOT_DETECTED
    assert not result.detected
    assert elapsed < 0.3 + 0.1 + 0.25


def test_reset_hides_markers_written_before(capture, write_log):
    """Test markers from before a reset never satisfy later assertions."""
    write_log("WARN tip hash changed detected at block 50\n")
    capture.reset()

    result = wait_for(TIP_HASH_MARKERS, capture, timeout=0.2, interval=0.05)

    assert result.kind is DetectionKind.NOT_DETECTED


def test_detects_marker_written_while_waiting(capture, write_log):
    """Test lines written asynchronously after the wait starts are seen."""
    timer = threading.Timer(0.2, write_log, args=("WARN tip hash changed detected at block 104\n",))
    timer.start()
    try:
        result = wait_for(TIP_HASH_MARKERS, capture, timeout=5, interval=0.05)
    finally:
        timer.cancel()

    assert result.kind is DetectionKind.EXACT


def test_returns_on_first_match():
    """Test the wait stops at the first poll that matches."""
    capture = Mock()
    capture.read.side_effect = ["", "INFO syncing\n", "WARN Reorg detected\n", ""]
    sleep = Mock()

    result = wait_for(TIP_HASH_MARKERS, capture, timeout=10, interval=0.5, sleep=sleep)

    assert result.kind is DetectionKind.GENERIC
    assert capture.read.call_count == 3


def test_matching_lines(capture, write_log):
    write_log("INFO indexed block 101\nWARN REORG detected\nINFO indexed block 102\nWARN reorg recovery done\n")

    assert matching_lines(capture, GENERIC_REORG) == [
        "WARN REORG detected",
        "WARN reorg recovery done",
    ]
