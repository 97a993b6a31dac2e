"""ClickHouse HTTP client and the Docker container hosting it."""

import shutil
import subprocess
from typing import Callable, List, Optional

import httpx

from reorg_harness.config import HarnessConfig
from reorg_harness.errors import ClickHouseError, ContainerStartError
from reorg_harness.log import get_logger
from reorg_harness.runtime.best_effort import best_effort

logger = get_logger(__name__)

# Databases ClickHouse creates on its own; anything else was created by the indexer.
SYSTEM_DATABASES = ("system", "INFORMATION_SCHEMA", "information_schema", "default")


class ClickHouseClient:
    """Client for the ClickHouse HTTP interface.

    Queries are POSTed as the request body and results come back as
    plain text (TabSeparated).

    Example usage:
        client = ClickHouseClient("http://127.0.0.1:18123", "default", "harness")
        client.ping()
    """

    def __init__(
        self,
        url: str,
        user: str,
        password: str,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the ClickHouse client.

        Args:
            url: Base URL of the HTTP interface
            user: ClickHouse user
            password: ClickHouse password
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.url = url.rstrip("/") + "/"
        self.auth = (user, password)
        self.timeout = timeout
        self.transport = transport

    def query(self, sql: str) -> str:
        """Run a query and return the raw text result.

        Raises:
            ClickHouseError: If the request fails or times out
        """
        logger.debug(f"ClickHouse query: {sql}")
        try:
            with httpx.Client(timeout=self.timeout, auth=self.auth, transport=self.transport) as client:
                response = client.post(self.url, content=sql.encode("utf-8"))
                response.raise_for_status()
                return response.text
        except httpx.TimeoutException as e:
            raise ClickHouseError(f"Timeout running query: {sql}") from e
        except httpx.HTTPStatusError as e:
            raise ClickHouseError(
                f"HTTP {e.response.status_code} running query: {e.response.text.strip()}"
            ) from e
        except httpx.HTTPError as e:
            raise ClickHouseError(f"Failed to run query: {e}") from e

    def count(self, sql: str) -> int:
        """Run a single-value count query."""
        text = self.query(sql).strip()
        try:
            return int(text or "0")
        except ValueError as e:
            raise ClickHouseError(f"Unexpected count result: {text!r}") from e

    def ping(self) -> bool:
        """Liveness probe: ``SELECT 1`` must return 1."""
        return self.query("SELECT 1").strip() == "1"

    def indexer_table_count(self) -> int:
        """Number of tables outside the built-in databases."""
        excluded = ", ".join(f"'{name}'" for name in SYSTEM_DATABASES)
        return self.count(f"SELECT count() FROM system.tables WHERE database NOT IN ({excluded})")

    def has_indexer_tables(self) -> bool:
        return self.indexer_table_count() > 0


class ClickHouseContainer:
    """Runs ClickHouse in Docker on a fixed non-default host port."""

    def __init__(
        self,
        config: HarnessConfig,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        which: Callable[[str], Optional[str]] = shutil.which,
    ):
        """Initialize container wrapper.

        Args:
            config: Configuration object with Docker and ClickHouse settings
            runner: subprocess.run compatible callable (injectable for tests)
            which: shutil.which compatible callable (injectable for tests)
        """
        self.config = config
        self.name = config.clickhouse_container
        self._runner = runner
        self._which = which
        self.started = False

    def _docker(self, *args: str, timeout: float = 120) -> subprocess.CompletedProcess:
        command: List[str] = [self.config.docker_bin, *args]
        return self._runner(command, capture_output=True, text=True, timeout=timeout)

    def unavailable_reason(self) -> Optional[str]:
        """Why the container runtime cannot be used, or None if it can."""
        if self._which(self.config.docker_bin) is None:
            return f"{self.config.docker_bin} not installed"
        try:
            result = self._docker("info", timeout=30)
        except (OSError, subprocess.TimeoutExpired) as e:
            return f"{self.config.docker_bin} info failed: {e}"
        if result.returncode != 0:
            return f"{self.config.docker_bin} daemon not running"
        return None

    def start(self) -> None:
        """Start a fresh container, replacing any stale one with the same name.

        Raises:
            ContainerStartError: If docker run fails
        """
        best_effort(f"remove stale container {self.name}", lambda: self._docker("rm", "-f", self.name))

        logger.info(
            f"Starting ClickHouse container {self.name} "
            f"({self.config.clickhouse_image}) on port {self.config.clickhouse_port}"
        )
        try:
            result = self._docker(
                "run",
                "-d",
                "--name", self.name,
                "-p", f"{self.config.clickhouse_port}:8123",
                "-e", f"CLICKHOUSE_USER={self.config.clickhouse_user}",
                "-e", f"CLICKHOUSE_PASSWORD={self.config.clickhouse_password}",
                "-e", "CLICKHOUSE_DEFAULT_ACCESS_MANAGEMENT=1",
                "--ulimit", "nofile=262144:262144",
                self.config.clickhouse_image,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ContainerStartError(f"docker run failed: {e}") from e

        if result.returncode != 0:
            raise ContainerStartError(f"docker run failed: {result.stderr.strip()}")

        self.started = True
        logger.info(f"ClickHouse container started: {result.stdout.strip()[:12]}")

    def stop(self) -> None:
        """Remove the container.

        Raises:
            ContainerStartError: If docker rm fails (callers wrap this in best_effort)
        """
        if not self.started:
            return
        result = self._docker("rm", "-f", self.name)
        if result.returncode != 0:
            raise ContainerStartError(f"docker rm failed: {result.stderr.strip()}")
        self.started = False
        logger.info(f"Removed ClickHouse container {self.name}")
