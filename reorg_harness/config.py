"""Configuration management for the reorg harness."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file if present
load_dotenv()


@dataclass
class HarnessConfig:
    """Harness configuration."""

    # Chain simulator
    anvil_bin: str = "anvil"
    anvil_port: int = 8545
    chain_id: int = 137
    block_time_seconds: int = 2
    ready_attempts: int = 15
    ready_interval_seconds: float = 0.5

    # Indexer under test
    indexer_bin: str = "target/release/rindexer_cli"
    indexer_namespace: str = "indexer"
    indexer_log_level: str = "warn"
    # Recovery markers are logged at info level
    storage_indexer_log_level: str = "info"
    indexer_poll_interval_seconds: float = 1.0
    fixture_dir: str = "fixtures"

    # Timing
    warmup_seconds: float = 20.0
    recache_seconds: float = 8.0
    tip_settle_seconds: float = 0.5
    detection_timeout_seconds: float = 15.0
    assert_poll_interval_seconds: float = 0.5
    recovery_timeout_seconds: float = 30.0
    terminate_timeout_seconds: float = 5.0

    # Storage backend (optional)
    docker_bin: str = "docker"
    clickhouse_image: str = "clickhouse/clickhouse-server:24.8"
    clickhouse_container: str = "reorg-harness-clickhouse"
    clickhouse_port: int = 18123
    clickhouse_user: str = "default"
    clickhouse_password: str = "harness"
    storage_ready_attempts: int = 30
    storage_ready_interval_seconds: float = 1.0
    table_ready_attempts: int = 30

    # Run options
    skip_storage: bool = False
    keep_workdir: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Load configuration from environment variables."""
        return cls(
            # Chain simulator
            anvil_bin=os.getenv("ANVIL_BIN", "anvil"),
            anvil_port=int(os.getenv("ANVIL_PORT", "8545")),
            chain_id=int(os.getenv("CHAIN_ID", "137")),
            block_time_seconds=int(os.getenv("BLOCK_TIME_SECONDS", "2")),
            ready_attempts=int(os.getenv("READY_ATTEMPTS", "15")),
            ready_interval_seconds=float(os.getenv("READY_INTERVAL_SECONDS", "0.5")),
            # Indexer under test
            indexer_bin=os.getenv("INDEXER_BIN", "target/release/rindexer_cli"),
            indexer_namespace=os.getenv("INDEXER_NAMESPACE", "indexer"),
            indexer_log_level=os.getenv("INDEXER_LOG_LEVEL", "warn"),
            storage_indexer_log_level=os.getenv("STORAGE_INDEXER_LOG_LEVEL", "info"),
            indexer_poll_interval_seconds=float(os.getenv("INDEXER_POLL_INTERVAL_SECONDS", "1.0")),
            fixture_dir=os.getenv("FIXTURE_DIR", "fixtures"),
            # Timing
            warmup_seconds=float(os.getenv("WARMUP_SECONDS", "20")),
            recache_seconds=float(os.getenv("RECACHE_SECONDS", "8")),
            tip_settle_seconds=float(os.getenv("TIP_SETTLE_SECONDS", "0.5")),
            detection_timeout_seconds=float(os.getenv("DETECTION_TIMEOUT_SECONDS", "15")),
            assert_poll_interval_seconds=float(os.getenv("ASSERT_POLL_INTERVAL_SECONDS", "0.5")),
            recovery_timeout_seconds=float(os.getenv("RECOVERY_TIMEOUT_SECONDS", "30")),
            terminate_timeout_seconds=float(os.getenv("TERMINATE_TIMEOUT_SECONDS", "5")),
            # Storage backend
            docker_bin=os.getenv("DOCKER_BIN", "docker"),
            clickhouse_image=os.getenv("CLICKHOUSE_IMAGE", "clickhouse/clickhouse-server:24.8"),
            clickhouse_container=os.getenv("CLICKHOUSE_CONTAINER", "reorg-harness-clickhouse"),
            clickhouse_port=int(os.getenv("CLICKHOUSE_PORT", "18123")),
            clickhouse_user=os.getenv("CLICKHOUSE_USER", "default"),
            clickhouse_password=os.getenv("CLICKHOUSE_PASSWORD", "harness"),
            storage_ready_attempts=int(os.getenv("STORAGE_READY_ATTEMPTS", "30")),
            storage_ready_interval_seconds=float(os.getenv("STORAGE_READY_INTERVAL_SECONDS", "1.0")),
            table_ready_attempts=int(os.getenv("TABLE_READY_ATTEMPTS", "30")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """Validate configuration values."""
        if self.anvil_port <= 0:
            raise ValueError("anvil_port must be > 0")
        if self.clickhouse_port <= 0:
            raise ValueError("clickhouse_port must be > 0")
        if self.clickhouse_port == self.anvil_port:
            raise ValueError("clickhouse_port must differ from anvil_port")
        if self.block_time_seconds <= 0:
            raise ValueError("block_time_seconds must be > 0")
        if self.ready_attempts <= 0:
            raise ValueError("ready_attempts must be > 0")
        if self.storage_ready_attempts <= 0 or self.table_ready_attempts <= 0:
            raise ValueError("storage readiness attempts must be > 0")
        if self.indexer_poll_interval_seconds <= 0:
            raise ValueError("indexer_poll_interval_seconds must be > 0")
        if self.tip_settle_seconds < 0:
            raise ValueError("tip_settle_seconds must be >= 0")
        if self.tip_settle_seconds >= self.indexer_poll_interval_seconds:
            raise ValueError("tip_settle_seconds must be shorter than the indexer poll interval")
        if self.detection_timeout_seconds <= 0 or self.recovery_timeout_seconds <= 0:
            raise ValueError("assertion timeouts must be > 0")
        if not 0 < self.assert_poll_interval_seconds < 1:
            raise ValueError("assert_poll_interval_seconds must be between 0 and 1")
        if self.warmup_seconds < 0 or self.recache_seconds < 0:
            raise ValueError("warm-up durations must be >= 0")

    @property
    def rpc_url(self) -> str:
        """HTTP URL of the chain simulator."""
        return f"http://127.0.0.1:{self.anvil_port}"

    @property
    def clickhouse_url(self) -> str:
        """HTTP URL of the ClickHouse container."""
        return f"http://127.0.0.1:{self.clickhouse_port}"

    @property
    def fixture_path(self) -> Path:
        return Path(self.fixture_dir).resolve()

    @property
    def indexer_path(self) -> Path:
        return Path(self.indexer_bin).resolve()
