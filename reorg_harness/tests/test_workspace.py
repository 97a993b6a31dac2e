"""Tests for working directory preparation and launch specs."""

import pytest
from dotenv import dotenv_values

from reorg_harness.errors import HarnessConfigError
from reorg_harness.workspace import (
    PRIMARY_FIXTURE,
    STORAGE_FIXTURE,
    indexer_spec,
    prepare_workdir,
    primary_credentials,
    simulator_spec,
    storage_credentials,
)


def test_prepare_primary_workdir(test_config, fixture_dir, tmp_path):
    workdir = tmp_path / "run"

    prepare_workdir(fixture_dir, workdir, PRIMARY_FIXTURE, primary_credentials(test_config))

    assert (workdir / "rindexer.yaml").read_text() == "name: ReorgTest\n"
    assert (workdir / "abis" / "ERC20.json").exists()
    assert dotenv_values(workdir / ".env") == {"RPC_URL": "http://127.0.0.1:8545"}


def test_prepare_storage_workdir(test_config, fixture_dir, tmp_path):
    workdir = tmp_path / "run" / "storage"

    prepare_workdir(fixture_dir, workdir, STORAGE_FIXTURE, storage_credentials(test_config))

    assert "clickhouse" in (workdir / "rindexer.yaml").read_text()
    env = dotenv_values(workdir / ".env")
    assert env["CLICKHOUSE_URL"] == "http://127.0.0.1:18123"
    assert env["CLICKHOUSE_PASSWORD"] == "harness"


def test_missing_fixture(test_config, tmp_path):
    with pytest.raises(HarnessConfigError):
        prepare_workdir(tmp_path / "nowhere", tmp_path / "run", PRIMARY_FIXTURE, {})


def test_indexer_spec(test_config, tmp_path):
    spec = indexer_spec(test_config, tmp_path)

    assert spec.command[1:] == ["start", "--path", str(tmp_path), "indexer"]
    assert spec.command[0].endswith("rindexer_cli")
    assert spec.env == {"RUST_LOG": "warn"}
    assert spec.cwd == tmp_path
    assert spec.log_path == tmp_path / "rindexer.log"


def test_simulator_spec(test_config, tmp_path):
    spec = simulator_spec(test_config, tmp_path)

    assert spec.command == [
        "anvil", "--chain-id", "137", "--block-time", "2", "--port", "8545", "--silent",
    ]


def test_storage_indexer_spec_logs_recovery_markers(test_config, tmp_path):
    """Test the ClickHouse-backed instance runs at info so recovery lines are written."""
    spec = indexer_spec(
        test_config,
        tmp_path / "storage",
        name="rindexer-clickhouse",
        log_level=test_config.storage_indexer_log_level,
    )

    assert spec.env == {"RUST_LOG": "info"}
    assert spec.log_path == tmp_path / "storage" / "rindexer-clickhouse.log"
