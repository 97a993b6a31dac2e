"""Managed child processes with captured output and scoped teardown."""

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Dict, List, Optional, Tuple

from reorg_harness.errors import HarnessError, ProcessExitedError
from reorg_harness.log import get_logger
from reorg_harness.runtime.best_effort import BestEffortResult, best_effort

logger = get_logger(__name__)


@dataclass
class ProcessSpec:
    """How to launch a managed process.

    Attributes:
        name: Logical name used in logs and reports
        command: Executable and arguments
        cwd: Working directory
        log_path: File receiving combined stdout/stderr
        env: Environment overrides layered on top of os.environ
    """
    name: str
    command: List[str]
    cwd: Path
    log_path: Path
    env: Dict[str, str] = field(default_factory=dict)


class OutputCapture:
    """Append-only view over a process log file.

    ``reset()`` moves the read offset to the current end of the file so
    later reads only see content written after the reset.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._offset = 0

    def _size(self) -> int:
        try:
            return self.path.stat().st_size
        except FileNotFoundError:
            return 0

    def reset(self) -> None:
        """Discard everything written so far from future reads."""
        self._offset = self._size()

    def read(self) -> str:
        """Return content written since the last reset."""
        return self._read_from(self._offset)

    def read_all(self) -> str:
        """Return the full capture, ignoring resets (for diagnostics)."""
        return self._read_from(0)

    def lines(self) -> List[str]:
        return self.read().splitlines()

    def _read_from(self, offset: int) -> str:
        try:
            with self.path.open("rb") as fh:
                fh.seek(offset)
                data = fh.read()
        except FileNotFoundError:
            return ""
        return data.decode("utf-8", errors="replace")


class ManagedProcess:
    """A launched child process owned by a ProcessSupervisor."""

    def __init__(
        self,
        spec: ProcessSpec,
        popen: subprocess.Popen,
        capture: OutputCapture,
        log_handle: BinaryIO,
    ):
        self.spec = spec
        self.popen = popen
        self.capture = capture
        self._log_handle = log_handle
        self.terminated = False

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def pid(self) -> int:
        return self.popen.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.popen.poll()

    def close_log(self) -> None:
        if not self._log_handle.closed:
            self._log_handle.close()

    def __repr__(self) -> str:
        return f"ManagedProcess(name={self.name!r}, pid={self.pid})"


class ProcessSupervisor:
    """Launches child processes and guarantees their teardown.

    Use as a context manager: leaving the block (normally, by exception or
    by KeyboardInterrupt) runs ``teardown_all`` exactly once. Cleanups
    registered with ``register_cleanup`` run after all processes stopped.

    Example:
        with ProcessSupervisor() as supervisor:
            anvil = supervisor.launch(spec)
            ...
    """

    def __init__(self, terminate_timeout: float = 5.0):
        """Initialize supervisor.

        Args:
            terminate_timeout: Seconds to wait after SIGTERM before SIGKILL
        """
        self.terminate_timeout = terminate_timeout
        self._processes: List[ManagedProcess] = []
        self._cleanups: List[Tuple[str, Callable[[], object]]] = []
        self._torn_down = False

    def __enter__(self) -> "ProcessSupervisor":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.teardown_all()
        return False

    @property
    def processes(self) -> List[ManagedProcess]:
        return list(self._processes)

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def launch(self, spec: ProcessSpec) -> ManagedProcess:
        """Start a process with its output redirected to ``spec.log_path``.

        Args:
            spec: Launch description

        Returns:
            The tracked ManagedProcess

        Raises:
            HarnessError: If the supervisor was already torn down
            OSError: If the executable cannot be started
        """
        if self._torn_down:
            raise HarnessError(f"Cannot launch {spec.name}: supervisor already torn down")

        spec.log_path.parent.mkdir(parents=True, exist_ok=True)
        log_handle = spec.log_path.open("ab")
        env = os.environ.copy()
        env.update(spec.env)

        try:
            popen = subprocess.Popen(
                spec.command,
                cwd=str(spec.cwd),
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=log_handle,
                stderr=subprocess.STDOUT,
            )
        except OSError:
            log_handle.close()
            raise

        process = ManagedProcess(spec, popen, OutputCapture(spec.log_path), log_handle)
        self._processes.append(process)
        logger.info(f"Started {spec.name} (pid {popen.pid}): {' '.join(spec.command)}")
        return process

    def is_alive(self, process: ManagedProcess) -> bool:
        return process.popen.poll() is None

    def ensure_alive(self, process: ManagedProcess) -> None:
        """Raise if a process that must still be running has exited.

        Raises:
            ProcessExitedError: With the full captured output attached
        """
        if self.is_alive(process):
            return
        raise ProcessExitedError(
            process.name,
            process.returncode,
            process.capture.read_all(),
        )

    def terminate(self, process: ManagedProcess) -> None:
        """Stop a process: SIGTERM, bounded wait, then SIGKILL.

        Safe to call on a process that already exited; a process is only
        ever signalled once.
        """
        if process.terminated:
            return
        process.terminated = True

        try:
            if process.popen.poll() is None:
                process.popen.terminate()
                try:
                    process.popen.wait(timeout=self.terminate_timeout)
                except subprocess.TimeoutExpired:
                    logger.warning(
                        f"{process.name} ignored SIGTERM for {self.terminate_timeout}s, killing"
                    )
                    process.popen.kill()
                    process.popen.wait(timeout=self.terminate_timeout)
                logger.info(f"Stopped {process.name} ({process.pid})")
            else:
                logger.debug(f"{process.name} already exited (code {process.returncode})")
        finally:
            process.close_log()

    def register_cleanup(self, description: str, action: Callable[[], object]) -> None:
        """Register a best-effort action to run during teardown."""
        self._cleanups.append((description, action))

    def teardown_all(self) -> List[BestEffortResult]:
        """Stop every tracked process and run registered cleanups.

        Idempotent: only the first call does any work.

        Returns:
            Results of each teardown step (empty on repeated calls)
        """
        if self._torn_down:
            return []
        self._torn_down = True

        logger.info("Cleaning up")
        results = []
        for process in reversed(self._processes):
            results.append(
                best_effort(f"stop {process.name}", lambda p=process: self.terminate(p))
            )
        for description, action in reversed(self._cleanups):
            results.append(best_effort(description, action))
        return results
