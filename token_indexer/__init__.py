"""Token holder indexer: on-chain holder counts from Transfer logs."""

__version__ = "1.0.0"
