"""
Ledger Cache.

In-memory holder ledger built from Transfer logs, with bootstrap,
incremental refresh and a throttled read entry point.
"""

from .service import LedgerCacheService, LedgerPhase, StatsSnapshot
from .state import HolderShare, LedgerState

__all__ = [
    "LedgerCacheService",
    "LedgerPhase",
    "StatsSnapshot",
    "LedgerState",
    "HolderShare",
]
