"""Allow ``python -m reorg_harness``."""

import sys

from reorg_harness.cli import main

sys.exit(main())
