"""Operations whose failure is logged but never propagated."""

from dataclasses import dataclass
from typing import Callable, Optional

from reorg_harness.log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class BestEffortResult:
    """Result of a best-effort operation.

    Attributes:
        description: What was attempted
        ok: Whether the operation completed without raising
        error: The error message when it did not
    """
    description: str
    ok: bool
    error: Optional[str] = None


def best_effort(description: str, action: Callable[[], object]) -> BestEffortResult:
    """Run ``action``, logging instead of raising on failure.

    Args:
        description: Short description used in log messages
        action: Zero-argument callable to run

    Returns:
        BestEffortResult describing the outcome
    """
    try:
        action()
    except Exception as e:
        logger.warning(f"Best-effort '{description}' failed: {e}")
        return BestEffortResult(description=description, ok=False, error=str(e))

    logger.debug(f"Best-effort '{description}' done")
    return BestEffortResult(description=description, ok=True)
