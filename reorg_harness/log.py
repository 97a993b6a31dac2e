"""Logging configuration for the reorg harness.

Report lines go through print(); logging carries diagnostics only.
"""

import logging
import sys
from typing import Optional

from reorg_harness.config import HarnessConfig

# Client libraries that log every request at INFO/DEBUG
NOISY_LOGGERS = ("web3", "urllib3", "httpx", "httpcore")


def resolve_level(name: str) -> int:
    """Map a level name such as ``info`` or ``DEBUG`` to its numeric level.

    Raises:
        ValueError: If the name is not a standard logging level
    """
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name!r}")
    return level


def setup_logging(config: Optional[HarnessConfig] = None, log_level: Optional[str] = None) -> None:
    """Configure Python logging for a harness run.

    Args:
        config: Config object (uses log_level from config if provided)
        log_level: Override log level (takes precedence over config)
    """
    level = resolve_level(log_level or (config.log_level if config else "INFO"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )

    # RPC and HTTP request chatter only shows when the harness itself runs at DEBUG
    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
