"""Working directory preparation and launch specs for the managed processes."""

import shutil
from pathlib import Path
from typing import Dict, Optional

from dotenv import set_key

from reorg_harness.config import HarnessConfig
from reorg_harness.errors import HarnessConfigError
from reorg_harness.log import get_logger
from reorg_harness.runtime.process import ProcessSpec

logger = get_logger(__name__)

# The indexer reads these two files from the directory passed to --path.
CONFIG_FILE_NAME = "rindexer.yaml"
CREDENTIALS_FILE_NAME = ".env"

PRIMARY_FIXTURE = "reorg_test.yaml"
STORAGE_FIXTURE = "reorg_clickhouse.yaml"


def primary_credentials(config: HarnessConfig) -> Dict[str, str]:
    return {"RPC_URL": config.rpc_url}


def storage_credentials(config: HarnessConfig) -> Dict[str, str]:
    return {
        "RPC_URL": config.rpc_url,
        "CLICKHOUSE_URL": config.clickhouse_url,
        "CLICKHOUSE_USER": config.clickhouse_user,
        "CLICKHOUSE_PASSWORD": config.clickhouse_password,
        "CLICKHOUSE_DB": "default",
    }


def prepare_workdir(
    fixture_dir: Path,
    workdir: Path,
    fixture_name: str,
    credentials: Dict[str, str],
) -> Path:
    """Populate an indexer working directory.

    Copies the fixture config to ``rindexer.yaml``, copies ``abis/`` when
    present and writes the credentials into ``.env``.

    Args:
        fixture_dir: Directory holding fixture configs and ABIs
        workdir: Directory to populate (created if missing)
        fixture_name: Fixture config file to use
        credentials: Key/value pairs for the credentials file

    Returns:
        The populated working directory

    Raises:
        HarnessConfigError: If the fixture config does not exist
    """
    source = fixture_dir / fixture_name
    if not source.is_file():
        raise HarnessConfigError(f"Fixture config not found: {source}")

    workdir.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, workdir / CONFIG_FILE_NAME)

    abis = fixture_dir / "abis"
    if abis.is_dir():
        shutil.copytree(abis, workdir / "abis", dirs_exist_ok=True)

    env_file = workdir / CREDENTIALS_FILE_NAME
    env_file.touch()
    for key, value in credentials.items():
        set_key(str(env_file), key, value, quote_mode="never")

    logger.info(f"Prepared {workdir} from {source.name}")
    return workdir


def simulator_spec(config: HarnessConfig, workdir: Path) -> ProcessSpec:
    return ProcessSpec(
        name="anvil",
        command=[
            config.anvil_bin,
            "--chain-id", str(config.chain_id),
            "--block-time", str(config.block_time_seconds),
            "--port", str(config.anvil_port),
            "--silent",
        ],
        cwd=workdir,
        log_path=workdir / "anvil.log",
    )


def indexer_spec(
    config: HarnessConfig,
    workdir: Path,
    name: str = "rindexer",
    log_level: Optional[str] = None,
) -> ProcessSpec:
    """Launch spec for ``<indexer> start --path <workdir> <namespace>``.

    ``log_level`` overrides the configured ``RUST_LOG`` filter.
    """
    return ProcessSpec(
        name=name,
        command=[
            str(config.indexer_path),
            "start",
            "--path", str(workdir),
            config.indexer_namespace,
        ],
        cwd=workdir,
        log_path=workdir / f"{name}.log",
        env={"RUST_LOG": log_level or config.indexer_log_level},
    )
