"""Time-windowed reorg injection against the chain simulator."""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from reorg_harness.eth.client import ChainSimulatorClient
from reorg_harness.log import get_logger

logger = get_logger(__name__)


class InjectionMode(str, Enum):
    """Which indexer detection path an injection is timed to hit."""
    TIP_ONLY = "tip_only"
    PARENT_MISMATCH = "parent_mismatch"


@dataclass
class InjectionRecord:
    """Chain state observed around one injection.

    Attributes:
        mode: Injection mode used
        depth: Reorg depth
        height_before: Tip height before the reorg
        tip_hash_before: Tip hash before the reorg
        height_after: Tip height after the injection completed
        reorged_block: First block replaced by the reorg
        reorged_hash_before: Hash of reorged_block before the reorg
        reorged_hash_after: Hash of reorged_block after the reorg
        window_seconds: Time taken by the RPC call(s) of the injection
    """
    mode: InjectionMode
    depth: int
    height_before: int
    tip_hash_before: Optional[str]
    height_after: int
    reorged_block: int
    reorged_hash_before: Optional[str]
    reorged_hash_after: Optional[str]
    window_seconds: float

    @property
    def hash_changed(self) -> Optional[bool]:
        """Whether the simulator rewrote reorged_block (None if unknown)."""
        if self.reorged_hash_before is None or self.reorged_hash_after is None:
            return None
        return self.reorged_hash_before.lower() != self.reorged_hash_after.lower()


class ReorgInjector:
    """Issues reorgs timed relative to the indexer's poll interval.

    TIP_ONLY sends ``anvil_reorg`` alone and pauses briefly so the indexer's
    next poll most likely sees the same height with a new hash.
    PARENT_MISMATCH sends ``anvil_reorg`` and ``evm_mine`` back to back so
    the next poll most likely sees a new block whose parent hash no longer
    matches the cached one. Neither mode can force a path; they only bias it.
    """

    def __init__(
        self,
        client: ChainSimulatorClient,
        indexer_poll_interval: float,
        tip_settle_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize injector.

        Args:
            client: Chain simulator client
            indexer_poll_interval: Indexer poll interval in seconds
            tip_settle_seconds: Pause after a TIP_ONLY reorg, shorter than the poll interval
            sleep: Sleep function (injectable for tests)
            clock: Monotonic clock (injectable for tests)
        """
        self.client = client
        self.indexer_poll_interval = indexer_poll_interval
        self.tip_settle_seconds = tip_settle_seconds
        self._sleep = sleep
        self._clock = clock

    def inject(self, depth: int, mode: InjectionMode) -> InjectionRecord:
        """Inject a reorg of ``depth`` blocks.

        Args:
            depth: Number of blocks to replace
            mode: Injection timing mode

        Returns:
            InjectionRecord with before/after chain state
        """
        height_before = self.client.block_number()
        reorged_block = max(0, height_before - depth + 1)
        tip_hash_before = self._hash_or_none(height_before)
        reorged_hash_before = self._hash_or_none(reorged_block)

        logger.info(
            f"Injecting reorg depth={depth} mode={mode.value} at height {height_before} "
            f"(tip {tip_hash_before})"
        )

        started = self._clock()
        self.client.reorg(depth)
        if mode is InjectionMode.PARENT_MISMATCH:
            self.client.mine()
        window = self._clock() - started

        if mode is InjectionMode.PARENT_MISMATCH and window >= self.indexer_poll_interval:
            logger.warning(
                f"Reorg + mine took {window:.3f}s, longer than the indexer poll interval "
                f"({self.indexer_poll_interval}s); the indexer may observe the reorged tip first"
            )

        if mode is InjectionMode.TIP_ONLY and self.tip_settle_seconds > 0:
            self._sleep(self.tip_settle_seconds)

        record = InjectionRecord(
            mode=mode,
            depth=depth,
            height_before=height_before,
            tip_hash_before=tip_hash_before,
            height_after=self.client.block_number(),
            reorged_block=reorged_block,
            reorged_hash_before=reorged_hash_before,
            reorged_hash_after=self._hash_or_none(reorged_block),
            window_seconds=window,
        )

        logger.info(
            f"Reorg sent in {window:.3f}s; height {record.height_before} -> {record.height_after}, "
            f"block {reorged_block} hash {record.reorged_hash_before} -> {record.reorged_hash_after}"
        )
        if record.hash_changed is False:
            logger.warning(f"Block {reorged_block} hash unchanged after reorg")

        return record

    def _hash_or_none(self, block_number: int) -> Optional[str]:
        try:
            return self.client.get_block_hash(block_number)
        except ValueError as e:
            logger.warning(str(e))
            return None
