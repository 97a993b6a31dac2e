"""Shared fixtures for harness tests."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from reorg_harness.config import HarnessConfig
from reorg_harness.runtime.process import OutputCapture, ProcessSupervisor


@pytest.fixture
def test_config(tmp_path):
    """Test configuration with short timeouts."""
    return HarnessConfig(
        fixture_dir=str(tmp_path / "fixtures"),
        detection_timeout_seconds=0.5,
        assert_poll_interval_seconds=0.05,
        recovery_timeout_seconds=0.5,
        recache_seconds=0,
        warmup_seconds=0,
        storage_ready_attempts=2,
        storage_ready_interval_seconds=0.01,
        table_ready_attempts=2,
        terminate_timeout_seconds=2.0,
    )


@pytest.fixture
def log_path(tmp_path) -> Path:
    path = tmp_path / "rindexer.log"
    path.touch()
    return path


@pytest.fixture
def capture(log_path) -> OutputCapture:
    return OutputCapture(log_path)


@pytest.fixture
def write_log(log_path):
    """Append text to the capture file the way a child process would."""
    def append(text: str) -> None:
        with log_path.open("a") as fh:
            fh.write(text)
    return append


@pytest.fixture
def mock_indexer(capture):
    """Stand-in for the managed indexer process with a real capture."""
    indexer = Mock()
    indexer.name = "rindexer"
    indexer.capture = capture
    return indexer


@pytest.fixture
def mock_supervisor():
    return Mock(spec=ProcessSupervisor)


@pytest.fixture
def fixture_dir(tmp_path) -> Path:
    """Minimal fixture directory mirroring the shipped one."""
    directory = tmp_path / "fixtures"
    (directory / "abis").mkdir(parents=True)
    (directory / "reorg_test.yaml").write_text("name: ReorgTest\n")
    (directory / "reorg_clickhouse.yaml").write_text("name: ReorgTest\nstorage:\n  clickhouse:\n    enabled: true\n")
    (directory / "abis" / "ERC20.json").write_text("[]")
    return directory
