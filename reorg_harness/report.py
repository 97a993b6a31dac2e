"""Run report models: per-scenario results and aggregate counters."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ScenarioStatus(str, Enum):
    """Scenario status enumeration."""
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"


class ScenarioResult(BaseModel):
    """Result of one scenario.

    Attributes:
        name: Scenario identifier
        title: Human-readable title
        status: Pass, fail or skip
        detail: One-line explanation printed in the summary
        detection: Detection classification, for log-marker scenarios
        exact: Whether the exact (path-specific) marker fired
        recovery: Recovery outcome, for the storage scenario
        evidence: Log lines supporting the result
    """
    name: str
    title: str
    status: ScenarioStatus
    detail: str = ""
    detection: Optional[str] = None
    exact: Optional[bool] = None
    recovery: Optional[str] = None
    evidence: List[str] = Field(default_factory=list)


class RunReport(BaseModel):
    """Aggregate outcome of a run.

    ``total_planned`` starts at the plan size and drops by one for every
    skipped scenario; skips never touch ``passed`` or ``failed``.
    """
    depth: int
    plan_size: int
    total_planned: int
    passed: int = 0
    failed: int = 0
    results: List[ScenarioResult] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def for_plan(cls, plan_size: int, depth: int) -> "RunReport":
        return cls(depth=depth, plan_size=plan_size, total_planned=plan_size)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status is ScenarioStatus.SKIP)

    @property
    def executed(self) -> int:
        return self.passed + self.failed

    @property
    def exit_code(self) -> int:
        return 1 if self.failed > 0 else 0

    def record(self, result: ScenarioResult) -> None:
        """Add a scenario result and update the counters.

        Raises:
            ValueError: If more results are recorded than the plan holds
        """
        if len(self.results) >= self.plan_size:
            raise ValueError(f"Plan holds {self.plan_size} scenarios, cannot record {result.name}")

        if result.status is ScenarioStatus.SKIP:
            self.total_planned -= 1
        elif result.status is ScenarioStatus.PASS:
            self.passed += 1
        else:
            self.failed += 1
        self.results.append(result)

    def summary_lines(self) -> List[str]:
        """Per-scenario status lines followed by the tally."""
        lines = []
        for result in self.results:
            line = f"  [{result.status.value.upper()}] {result.title}"
            if result.detail:
                line += f": {result.detail}"
            lines.append(line)
        lines.append("")
        lines.append(
            f"  Passed: {self.passed}/{self.total_planned}  "
            f"Failed: {self.failed}  Skipped: {self.skipped}"
        )
        return lines
