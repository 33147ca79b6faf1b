"""
Blockchain services module.

RPC access for the indexer: provider pool with rotation, windowed
Transfer log fetching, first-activity search and token metadata reads.
"""

from .chain_locator import ProbeKind, ProbeResult, find_first_activity_block
from .events import TransferEvent, decode_transfer_log
from .log_fetcher import fetch_logs
from .provider_pool import ProviderPool, RpcConnection
from .token_metadata import TokenMetadata, fetch_token_metadata


__all__ = [
    "ProviderPool",
    "RpcConnection",
    "TransferEvent",
    "decode_transfer_log",
    "fetch_logs",
    "find_first_activity_block",
    "ProbeKind",
    "ProbeResult",
    "TokenMetadata",
    "fetch_token_metadata",
]
