"""Web3 client for the Anvil chain simulator."""

from typing import Any, List

from web3 import Web3
from web3.types import RPCEndpoint

from reorg_harness.config import HarnessConfig
from reorg_harness.errors import ChainRPCError
from reorg_harness.log import get_logger

logger = get_logger(__name__)


class ChainSimulatorClient:
    """JSON-RPC client for standard chain queries and Anvil test methods."""

    def __init__(self, config: HarnessConfig, request_timeout: int = 5):
        """Initialize Web3 client.

        The simulator may not be running yet, so no connection check is
        made here; use ``is_ready`` with the readiness prober.

        Args:
            config: Configuration object with RPC URL
            request_timeout: Per-request HTTP timeout in seconds
        """
        self.config = config
        self.web3 = Web3(
            Web3.HTTPProvider(config.rpc_url, request_kwargs={"timeout": request_timeout})
        )

    def chain_id(self) -> int:
        return self.web3.eth.chain_id

    def is_ready(self) -> bool:
        """Check the simulator answers with the expected chain id."""
        return self.chain_id() == self.config.chain_id

    def block_number(self) -> int:
        return self.web3.eth.block_number

    def get_block_hash(self, block_number: int) -> str:
        """Get block hash for a given block number.

        Args:
            block_number: Block number to query

        Returns:
            Block hash (0x-prefixed hex string)

        Raises:
            ValueError: If block not found
        """
        try:
            block = self.web3.eth.get_block(block_number)
            return Web3.to_hex(block["hash"])
        except Exception as e:
            raise ValueError(f"Failed to get block hash for block {block_number}: {e}") from e

    def reorg(self, depth: int) -> Any:
        """Roll back the last ``depth`` blocks and replace them (anvil_reorg).

        Args:
            depth: Number of blocks to replace

        Raises:
            ChainRPCError: If the simulator rejects the call
        """
        if depth <= 0:
            raise ValueError("reorg depth must be > 0")
        return self._rpc("anvil_reorg", [depth, []])

    def mine(self) -> Any:
        """Mine exactly one new block (evm_mine)."""
        return self._rpc("evm_mine", [])

    def _rpc(self, method: str, params: List[Any]) -> Any:
        response = self.web3.provider.make_request(RPCEndpoint(method), params)
        if "error" in response:
            error = response["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise ChainRPCError(f"{method} failed: {message}")
        logger.debug(f"{method}({params}) -> {response.get('result')}")
        return response.get("result")
