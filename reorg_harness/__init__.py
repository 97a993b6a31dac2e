"""End-to-end reorg detection harness for a blockchain event indexer."""

__version__ = "0.1.0"
