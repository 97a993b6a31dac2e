"""Tests for configuration loading and validation."""

import pytest

from reorg_harness.config import HarnessConfig


def test_defaults_are_valid():
    config = HarnessConfig()
    config.validate()

    assert config.rpc_url == "http://127.0.0.1:8545"
    assert config.clickhouse_url == "http://127.0.0.1:18123"


def test_from_env(monkeypatch):
    monkeypatch.setenv("ANVIL_PORT", "9545")
    monkeypatch.setenv("CHAIN_ID", "31337")
    monkeypatch.setenv("DETECTION_TIMEOUT_SECONDS", "30")
    monkeypatch.setenv("INDEXER_BIN", "/opt/rindexer/rindexer_cli")

    config = HarnessConfig.from_env()

    assert config.anvil_port == 9545
    assert config.chain_id == 31337
    assert config.detection_timeout_seconds == 30.0
    assert config.indexer_bin == "/opt/rindexer/rindexer_cli"
    assert config.indexer_log_level == "warn"
    assert config.storage_indexer_log_level == "info"
    assert config.rpc_url == "http://127.0.0.1:9545"


def test_storage_port_must_not_collide_with_simulator():
    config = HarnessConfig(anvil_port=18123, clickhouse_port=18123)

    with pytest.raises(ValueError, match="clickhouse_port"):
        config.validate()


def test_tip_settle_must_be_shorter_than_poll_interval():
    config = HarnessConfig(tip_settle_seconds=2.0, indexer_poll_interval_seconds=1.0)

    with pytest.raises(ValueError, match="tip_settle_seconds"):
        config.validate()


def test_assert_poll_interval_is_sub_second():
    config = HarnessConfig(assert_poll_interval_seconds=1.5)

    with pytest.raises(ValueError):
        config.validate()
