"""The fixed scenario plan and the aggregator that runs it."""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from reorg_harness.config import HarnessConfig
from reorg_harness.detection.log_watch import matching_lines, wait_for
from reorg_harness.detection.markers import (
    GENERIC_REORG,
    PARENT_HASH_MARKERS,
    RECOVERY_MARKERS,
    TIP_HASH_MARKERS,
    Marker,
)
from reorg_harness.errors import ContainerStartError
from reorg_harness.eth.client import ChainSimulatorClient
from reorg_harness.eth.injector import InjectionMode, ReorgInjector
from reorg_harness.log import get_logger
from reorg_harness.report import RunReport, ScenarioResult, ScenarioStatus
from reorg_harness.runtime.polling import Readiness, await_ready, poll_until
from reorg_harness.runtime.process import ManagedProcess, ProcessSupervisor
from reorg_harness.storage.clickhouse import ClickHouseClient, ClickHouseContainer
from reorg_harness.storage.verifier import RecoveryCheckResult, RecoveryOutcome, verify_recovery
from reorg_harness.workspace import STORAGE_FIXTURE, indexer_spec, prepare_workdir, storage_credentials

logger = get_logger(__name__)


@dataclass
class ScenarioContext:
    """Live resources shared by the scenarios of one run."""
    config: HarnessConfig
    depth: int
    supervisor: ProcessSupervisor
    chain: ChainSimulatorClient
    injector: ReorgInjector
    simulator: ManagedProcess
    indexer: ManagedProcess
    workdir: Path

    def ensure_alive(self, processes: Optional[Sequence[ManagedProcess]] = None) -> None:
        """Raise ProcessExitedError if a watched process has exited."""
        for process in processes or (self.simulator, self.indexer):
            self.supervisor.ensure_alive(process)

    def settle(self, seconds: float, processes: Optional[Sequence[ManagedProcess]] = None) -> None:
        """Let the indexer poll for ``seconds``, checking liveness every second."""
        self.ensure_alive(processes)
        if seconds <= 0:
            return

        started = time.monotonic()

        def progress() -> bool:
            self.ensure_alive(processes)
            elapsed = min(time.monotonic() - started, seconds)
            print(f"\r  Block: {self._height()}  ({elapsed:.1f}/{seconds:.1f}s)", end="", flush=True)
            return False

        poll_until(progress, timeout=seconds, interval=1.0)
        print()

    def _height(self) -> str:
        try:
            return str(self.chain.block_number())
        except Exception as e:
            logger.debug(f"Block height unavailable: {e}")
            return "?"


class Scenario:
    """One named, independently classified unit of the plan."""

    name: str = ""
    title: str = ""

    def run(self, ctx: ScenarioContext) -> ScenarioResult:
        raise NotImplementedError

    def _result(self, status: ScenarioStatus, detail: str, **fields) -> ScenarioResult:
        return ScenarioResult(name=self.name, title=self.title, status=status, detail=detail, **fields)


class DetectionScenario(Scenario):
    """Inject a reorg and wait for the indexer to log its detection.

    Either the path-specific marker or the generic REORG fallback counts as
    a pass; which one fired is recorded.
    """

    def __init__(
        self,
        name: str,
        title: str,
        mode: InjectionMode,
        markers: Sequence[Marker],
        settle_seconds: float = 0.0,
    ):
        self.name = name
        self.title = title
        self.mode = mode
        self.markers = list(markers)
        self.settle_seconds = settle_seconds

    def run(self, ctx: ScenarioContext) -> ScenarioResult:
        ctx.settle(self.settle_seconds)

        capture = ctx.indexer.capture
        capture.reset()
        ctx.injector.inject(ctx.depth, self.mode)

        print(f"  Waiting up to {ctx.config.detection_timeout_seconds:.0f}s for detection...")
        detection = wait_for(
            self.markers,
            capture,
            timeout=ctx.config.detection_timeout_seconds,
            interval=ctx.config.assert_poll_interval_seconds,
        )

        if not detection.detected:
            # An indexer crash inside the window is fatal, not a scenario failure.
            ctx.ensure_alive()
            return self._result(
                ScenarioStatus.FAIL,
                f"no reorg marker within {ctx.config.detection_timeout_seconds:.0f}s",
                detection=detection.kind.value,
                exact=False,
                evidence=capture.lines(),
            )

        if detection.exact:
            detail = f"detected via exact marker {detection.marker!r}"
        else:
            detail = "detected via generic REORG marker (exact path not confirmed)"

        evidence = matching_lines(capture, GENERIC_REORG)
        if detection.line and detection.line not in evidence:
            evidence.insert(0, detection.line)

        return self._result(
            ScenarioStatus.PASS,
            detail,
            detection=detection.kind.value,
            exact=detection.exact,
            evidence=evidence,
        )


class StorageRecoveryScenario(Scenario):
    """Check the indexer deletes orphaned events and rewinds its checkpoint.

    Needs Docker for a ClickHouse container; when that is unavailable the
    scenario is skipped rather than failed. The primary indexer is stopped
    and a ClickHouse-backed instance is started in its own subdirectory.
    """

    name = "storage-recovery"
    title = "Storage recovery (ClickHouse)"

    def __init__(
        self,
        container_factory: Callable[[HarnessConfig], ClickHouseContainer] = ClickHouseContainer,
        client_factory: Optional[Callable[[HarnessConfig], ClickHouseClient]] = None,
    ):
        self.container_factory = container_factory
        self.client_factory = client_factory or (
            lambda config: ClickHouseClient(
                config.clickhouse_url, config.clickhouse_user, config.clickhouse_password
            )
        )

    def run(self, ctx: ScenarioContext) -> ScenarioResult:
        config = ctx.config
        if config.skip_storage:
            return self._from_recovery(RecoveryCheckResult.skip("disabled by --skip-storage"))

        container = self.container_factory(config)
        reason = container.unavailable_reason()
        if reason:
            return self._from_recovery(RecoveryCheckResult.skip(reason))

        ctx.supervisor.register_cleanup(f"remove container {container.name}", container.stop)
        try:
            container.start()
        except ContainerStartError as e:
            return self._from_recovery(RecoveryCheckResult.skip(str(e)))

        client = self.client_factory(config)
        readiness = await_ready(
            client.ping,
            max_attempts=config.storage_ready_attempts,
            interval=config.storage_ready_interval_seconds,
            name="ClickHouse",
        )
        if readiness is Readiness.TIMED_OUT:
            return self._from_recovery(
                RecoveryCheckResult.skip(
                    f"ClickHouse not ready after {config.storage_ready_attempts} attempts"
                )
            )

        ctx.supervisor.terminate(ctx.indexer)
        storage_dir = prepare_workdir(
            config.fixture_path,
            ctx.workdir / "storage",
            STORAGE_FIXTURE,
            storage_credentials(config),
        )
        spec = indexer_spec(
            config,
            storage_dir,
            name="rindexer-clickhouse",
            log_level=config.storage_indexer_log_level,
        )
        indexer = ctx.supervisor.launch(spec)
        ctx.indexer = indexer
        watched = (ctx.simulator, indexer)

        tables = await_ready(
            client.has_indexer_tables,
            max_attempts=config.table_ready_attempts,
            interval=config.storage_ready_interval_seconds,
            name="ClickHouse tables",
        )
        if tables is Readiness.TIMED_OUT:
            ctx.ensure_alive(watched)
            return self._result(
                ScenarioStatus.FAIL,
                "indexer never created its ClickHouse tables",
                evidence=indexer.capture.lines(),
            )

        ctx.settle(config.recache_seconds, watched)

        indexer.capture.reset()
        ctx.injector.inject(ctx.depth, InjectionMode.TIP_ONLY)

        print(f"  Waiting up to {config.recovery_timeout_seconds:.0f}s for recovery...")
        recovery = verify_recovery(
            indexer.capture,
            timeout=config.recovery_timeout_seconds,
            interval=config.assert_poll_interval_seconds,
        )
        if not recovery.passed:
            ctx.ensure_alive(watched)

        evidence: List[str] = []
        for marker in RECOVERY_MARKERS:
            evidence.extend(matching_lines(indexer.capture, marker))
        if recovery.outcome is RecoveryOutcome.NONE:
            evidence = indexer.capture.lines()
        return self._from_recovery(recovery, evidence)

    def _from_recovery(
        self,
        recovery: RecoveryCheckResult,
        evidence: Optional[List[str]] = None,
    ) -> ScenarioResult:
        outcome = recovery.outcome
        if outcome is RecoveryOutcome.SKIPPED:
            logger.warning(f"Skipping {self.name}: {recovery.reason}")
            status, detail = ScenarioStatus.SKIP, recovery.reason or "skipped"
        elif outcome is RecoveryOutcome.FULL:
            status, detail = ScenarioStatus.PASS, "events deleted and checkpoint rewound"
        elif outcome is RecoveryOutcome.PARTIAL:
            missing = "checkpoint rewind" if recovery.events_deleted else "event deletion"
            status, detail = ScenarioStatus.FAIL, f"partial recovery, missing {missing}"
        else:
            status, detail = ScenarioStatus.FAIL, "no recovery observed"
        return self._result(status, detail, recovery=outcome.value, evidence=evidence or [])


def build_plan(config: HarnessConfig) -> List[Scenario]:
    """The fixed, ordered scenario plan."""
    return [
        DetectionScenario(
            "tip-hash-changed",
            "Tip hash changed",
            InjectionMode.TIP_ONLY,
            TIP_HASH_MARKERS,
        ),
        DetectionScenario(
            "parent-hash-mismatch",
            "Parent hash mismatch",
            InjectionMode.PARENT_MISMATCH,
            PARENT_HASH_MARKERS,
            settle_seconds=config.recache_seconds,
        ),
        StorageRecoveryScenario(),
    ]


def run_plan(plan: Sequence[Scenario], ctx: ScenarioContext, report: RunReport) -> RunReport:
    """Run every scenario in order, recording each result.

    Scenario failures never stop the plan; fatal errors (a managed process
    exiting) propagate.
    """
    for index, scenario in enumerate(plan, start=1):
        print(f"\n=== Scenario {index}/{len(plan)}: {scenario.title} (depth={ctx.depth}) ===")
        result = scenario.run(ctx)
        report.record(result)
        print(f"  -> {result.status.value.upper()}: {result.detail}")
    return report
