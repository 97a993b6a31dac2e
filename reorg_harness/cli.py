"""Command-line entry point for the reorg harness."""

import argparse
import signal
import sys
from pathlib import Path
from typing import List, Optional

from reorg_harness.config import HarnessConfig
from reorg_harness.errors import (
    DependencyNotReadyError,
    HarnessConfigError,
    HarnessInterrupted,
    ProcessExitedError,
)
from reorg_harness.log import get_logger, setup_logging
from reorg_harness.runner import HarnessRunner

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INTERRUPTED = 130


def signal_handler(signum, frame):
    """Turn SIGTERM into an exception so the supervisor scope unwinds."""
    raise HarnessInterrupted(f"Received signal {signum}")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description="End-to-end reorg detection test: Anvil + indexer",
        prog="reorg-harness",
    )
    parser.add_argument(
        "depth",
        nargs="?",
        type=int,
        default=3,
        help="Reorg depth in blocks (default: 3)",
    )
    parser.add_argument("--indexer-bin", type=str, help="Path to the indexer binary")
    parser.add_argument("--fixtures", type=str, help="Fixture directory")
    parser.add_argument("--skip-storage", action="store_true", help="Skip the ClickHouse scenario")
    parser.add_argument("--keep-workdir", action="store_true", help="Keep logs and configs after the run")
    parser.add_argument("--report-json", type=Path, help="Write the final report as JSON")
    parser.add_argument("--log-level", type=str, help="Harness log level")
    return parser


def build_config(args: argparse.Namespace) -> HarnessConfig:
    """Environment configuration with command-line overrides applied."""
    config = HarnessConfig.from_env()
    if args.indexer_bin:
        config.indexer_bin = args.indexer_bin
    if args.fixtures:
        config.fixture_dir = args.fixtures
    if args.log_level:
        config.log_level = args.log_level
    config.skip_storage = config.skip_storage or args.skip_storage
    config.keep_workdir = config.keep_workdir or args.keep_workdir
    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.depth <= 0:
        parser.error("depth must be a positive integer")

    try:
        config = build_config(args)
        setup_logging(config)
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FAILED

    signal.signal(signal.SIGTERM, signal_handler)

    try:
        report = HarnessRunner(config, depth=args.depth, report_json=args.report_json).run()
    except (KeyboardInterrupt, HarnessInterrupted):
        print("\nInterrupted")
        return EXIT_INTERRUPTED
    except ProcessExitedError as e:
        print(f"\nERROR: {e}. Log output:", file=sys.stderr)
        print(e.output, file=sys.stderr)
        return EXIT_FAILED
    except (DependencyNotReadyError, HarnessConfigError) as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        return EXIT_FAILED
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return EXIT_FAILED

    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
