"""Exception types raised by the harness."""

from typing import Optional


class HarnessError(Exception):
    """Base exception for harness errors."""
    pass


class HarnessConfigError(HarnessError):
    """Raised when the binaries or fixtures the run needs are missing."""
    pass


class DependencyNotReadyError(HarnessError):
    """Raised when a mandatory dependency fails its readiness budget."""

    def __init__(self, name: str, attempts: int):
        super().__init__(f"{name} not ready after {attempts} attempts")
        self.name = name
        self.attempts = attempts


class ProcessExitedError(HarnessError):
    """Raised when a managed process exits before the run is over."""

    def __init__(self, name: str, returncode: Optional[int], output: str = ""):
        super().__init__(f"{name} exited early (code {returncode})")
        self.name = name
        self.returncode = returncode
        self.output = output


class HarnessInterrupted(BaseException):
    """Raised from the SIGTERM handler so cleanup unwinds like Ctrl-C.

    Derives from BaseException, like KeyboardInterrupt, so handlers for
    ordinary errors cannot absorb it.
    """
    pass


class ChainRPCError(HarnessError):
    """Raised when the chain simulator rejects an RPC call."""
    pass


class ClickHouseError(HarnessError):
    """Raised when a ClickHouse query fails."""
    pass


class ContainerStartError(HarnessError):
    """Raised when the storage container cannot be started."""
    pass
