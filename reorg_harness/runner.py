"""End-to-end harness run: stand up dependencies, run the plan, report."""

import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

from reorg_harness.config import HarnessConfig
from reorg_harness.errors import DependencyNotReadyError, HarnessConfigError
from reorg_harness.eth.client import ChainSimulatorClient
from reorg_harness.eth.injector import ReorgInjector
from reorg_harness.log import get_logger
from reorg_harness.report import RunReport, ScenarioStatus
from reorg_harness.runtime.polling import Readiness, await_ready
from reorg_harness.runtime.process import ProcessSupervisor
from reorg_harness.scenarios import Scenario, ScenarioContext, build_plan, run_plan
from reorg_harness.workspace import (
    PRIMARY_FIXTURE,
    indexer_spec,
    prepare_workdir,
    primary_credentials,
    simulator_spec,
)

logger = get_logger(__name__)


class HarnessRunner:
    """Runs the reorg scenarios against a live simulator and indexer."""

    def __init__(
        self,
        config: HarnessConfig,
        depth: int = 3,
        report_json: Optional[Path] = None,
        plan: Optional[List[Scenario]] = None,
    ):
        """Initialize runner.

        Args:
            config: Configuration object
            depth: Reorg depth used by every scenario
            report_json: Where to write the final report as JSON, if anywhere
            plan: Scenario plan (defaults to build_plan(config))
        """
        if depth <= 0:
            raise ValueError("reorg depth must be > 0")
        self.config = config
        self.depth = depth
        self.report_json = report_json
        self.plan = plan if plan is not None else build_plan(config)

    def check_prerequisites(self) -> None:
        """Fail fast when the simulator or indexer binary is missing.

        Raises:
            HarnessConfigError: If a binary or the fixture directory is missing
        """
        if shutil.which(self.config.anvil_bin) is None:
            raise HarnessConfigError(f"Chain simulator not found: {self.config.anvil_bin}")
        if not self.config.indexer_path.is_file():
            raise HarnessConfigError(
                f"Indexer binary not found: {self.config.indexer_path} (build it first)"
            )
        if not self.config.fixture_path.is_dir():
            raise HarnessConfigError(f"Fixture directory not found: {self.config.fixture_path}")

    def run(self) -> RunReport:
        """Run the whole plan under one supervisor scope.

        Every launched process, the storage container and the working
        directory are released when the scope exits, however it exits.

        Returns:
            The completed RunReport
        """
        self.check_prerequisites()
        report = RunReport.for_plan(len(self.plan), self.depth)

        with ProcessSupervisor(self.config.terminate_timeout_seconds) as supervisor:
            workdir = Path(tempfile.mkdtemp(prefix="reorg-harness-"))
            if self.config.keep_workdir:
                logger.info(f"Keeping working directory {workdir}")
            else:
                supervisor.register_cleanup(
                    f"remove {workdir}", lambda: shutil.rmtree(workdir)
                )

            ctx = self.start_dependencies(supervisor, workdir)
            run_plan(self.plan, ctx, report)
            self.print_report(report, workdir)

        if self.report_json is not None:
            self.report_json.parent.mkdir(parents=True, exist_ok=True)
            self.report_json.write_text(report.model_dump_json(indent=2))
            logger.info(f"Report written to {self.report_json}")

        return report

    def start_dependencies(self, supervisor: ProcessSupervisor, workdir: Path) -> ScenarioContext:
        """Start the simulator and the indexer, then let the indexer cache blocks.

        Raises:
            DependencyNotReadyError: If the simulator misses its readiness budget
            ProcessExitedError: If a process exits during start-up
        """
        config = self.config
        prepare_workdir(config.fixture_path, workdir, PRIMARY_FIXTURE, primary_credentials(config))

        print(f"=== Starting Anvil (chain_id={config.chain_id}, block_time={config.block_time_seconds}s) ===")
        simulator = supervisor.launch(simulator_spec(config, workdir))
        chain = ChainSimulatorClient(config)

        readiness = await_ready(
            chain.is_ready,
            max_attempts=config.ready_attempts,
            interval=config.ready_interval_seconds,
            name="Anvil",
        )
        if readiness is Readiness.TIMED_OUT:
            supervisor.ensure_alive(simulator)
            raise DependencyNotReadyError("Anvil", config.ready_attempts)
        print(f"Anvil ready, starting block: {chain.block_number()}")

        print("\n=== Starting indexer ===")
        indexer = supervisor.launch(indexer_spec(config, workdir))

        ctx = ScenarioContext(
            config=config,
            depth=self.depth,
            supervisor=supervisor,
            chain=chain,
            injector=ReorgInjector(
                chain,
                indexer_poll_interval=config.indexer_poll_interval_seconds,
                tip_settle_seconds=config.tip_settle_seconds,
            ),
            simulator=simulator,
            indexer=indexer,
            workdir=workdir,
        )

        print(f"\n=== Waiting {config.warmup_seconds:.0f}s for the indexer to cache blocks ===")
        ctx.settle(config.warmup_seconds)
        return ctx

    def print_report(self, report: RunReport, workdir: Path) -> None:
        print("")
        print("=" * 60)
        print(f"  Reorg detection results (depth={report.depth})")
        print("=" * 60)
        for result in report.results:
            if result.status is ScenarioStatus.SKIP or not result.evidence:
                continue
            heading = "Reorg-related log lines" if result.status is ScenarioStatus.PASS else "Indexer log"
            print(f"\n{heading} ({result.title}):")
            for line in result.evidence:
                print(f"    {line}")
        print("")
        for line in report.summary_lines():
            print(line)
        if self.config.keep_workdir:
            print(f"\nLogs available in: {workdir}")
