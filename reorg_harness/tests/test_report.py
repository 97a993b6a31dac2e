"""Tests for run report aggregation."""

import json

import pytest

from reorg_harness.report import RunReport, ScenarioResult, ScenarioStatus


def result(name: str, status: ScenarioStatus, **fields) -> ScenarioResult:
    return ScenarioResult(name=name, title=name.replace("-", " "), status=status, **fields)


def test_pass_and_fail_counters():
    report = RunReport.for_plan(3, depth=3)

    report.record(result("tip-hash-changed", ScenarioStatus.PASS))
    report.record(result("parent-hash-mismatch", ScenarioStatus.FAIL))

    assert report.passed == 1
    assert report.failed == 1
    assert report.total_planned == 3
    assert report.exit_code == 1


def test_skip_only_reduces_planned_total():
    """Test a skip lowers total_planned by exactly one and nothing else."""
    report = RunReport.for_plan(3, depth=3)
    report.record(result("tip-hash-changed", ScenarioStatus.PASS))
    report.record(result("parent-hash-mismatch", ScenarioStatus.PASS))

    report.record(result("storage-recovery", ScenarioStatus.SKIP, detail="docker not installed"))

    assert report.total_planned == 2
    assert report.passed == 2
    assert report.failed == 0
    assert report.skipped == 1
    assert report.executed == 2
    assert report.exit_code == 0


def test_cannot_record_more_than_plan():
    report = RunReport.for_plan(1, depth=3)
    report.record(result("tip-hash-changed", ScenarioStatus.PASS))

    with pytest.raises(ValueError):
        report.record(result("parent-hash-mismatch", ScenarioStatus.PASS))
    assert report.passed == 1


def test_summary_lines():
    report = RunReport.for_plan(3, depth=3)
    report.record(result("tip-hash-changed", ScenarioStatus.PASS, detail="detected via exact marker"))
    report.record(result("parent-hash-mismatch", ScenarioStatus.FAIL, detail="no reorg marker within 15s"))
    report.record(result("storage-recovery", ScenarioStatus.SKIP, detail="docker daemon not running"))

    lines = report.summary_lines()

    assert lines[0] == "  [PASS] tip hash changed: detected via exact marker"
    assert lines[1] == "  [FAIL] parent hash mismatch: no reorg marker within 15s"
    assert lines[2] == "  [SKIP] storage recovery: docker daemon not running"
    assert lines[-1] == "  Passed: 1/2  Failed: 1  Skipped: 1"


def test_json_dump():
    report = RunReport.for_plan(3, depth=5)
    report.record(result("tip-hash-changed", ScenarioStatus.PASS, detection="exact", exact=True))

    data = json.loads(report.model_dump_json())

    assert data["depth"] == 5
    assert data["total_planned"] == 3
    assert data["results"][0]["status"] == "pass"
    assert data["results"][0]["exact"] is True
