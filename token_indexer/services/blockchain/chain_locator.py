"""
First-activity block locator.

Binary-searches the chain for the earliest block holding a Transfer
log of the token, so bootstrap does not scan from genesis. Each probe
queries a window of blocks rather than a single block.
"""

import enum
from dataclasses import dataclass

from loguru import logger

from token_indexer.config.constants import (
    LOCATOR_CUSHION,
    LOCATOR_MAX_PROBES,
    LOCATOR_WINDOW,
    TRANSFER_TOPIC,
)
from token_indexer.utils.exceptions import PROVIDER_FAILURES

from .events import decode_transfer_logs
from .provider_pool import ProviderPool, RpcConnection


class ProbeKind(enum.Enum):
    FOUND = "found"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one presence probe; block is set only for FOUND."""

    kind: ProbeKind
    block: int | None = None

    @classmethod
    def found(cls, block: int) -> "ProbeResult":
        return cls(ProbeKind.FOUND, block)

    @classmethod
    def empty(cls) -> "ProbeResult":
        return cls(ProbeKind.EMPTY)

    @classmethod
    def error(cls) -> "ProbeResult":
        return cls(ProbeKind.ERROR)


@dataclass(frozen=True)
class SearchBounds:
    lo: int
    hi: int
    candidate: int

    @property
    def exhausted(self) -> bool:
        return self.lo > self.hi


def next_bounds(
    bounds: SearchBounds,
    mid: int,
    probe: ProbeResult,
    window: int = LOCATOR_WINDOW,
) -> SearchBounds | None:
    """
    Apply one probe outcome to the search bounds.

    Args:
        bounds: Current bounds and best candidate so far
        mid: Block the probe window started at
        probe: Probe outcome
        window: Probe window size

    Returns:
        New bounds, or None when an error made no progress and the
        search has to stop with the current candidate
    """
    if probe.kind is ProbeKind.FOUND:
        return SearchBounds(
            lo=bounds.lo,
            hi=mid - 1,
            candidate=min(bounds.candidate, probe.block),
        )
    if probe.kind is ProbeKind.EMPTY:
        return SearchBounds(lo=mid + window, hi=bounds.hi, candidate=bounds.candidate)

    # ERROR: shrink the space instead of failing the whole search
    new_hi = max(bounds.lo, mid - 1)
    if new_hi == bounds.hi:
        return None
    return SearchBounds(lo=bounds.lo, hi=new_hi, candidate=bounds.candidate)


async def probe_window(
    connection: RpcConnection,
    contract_address: str,
    start: int,
    end: int,
) -> ProbeResult:
    """Check whether any Transfer log exists in [start, end]."""
    try:
        logs = await connection.get_logs(
            contract_address, [TRANSFER_TOPIC], start, end
        )
    except PROVIDER_FAILURES as e:
        logger.debug(f"[Locator] Probe {start}-{end} failed: {e}")
        return ProbeResult.error()

    events = decode_transfer_logs(logs)
    if not events:
        return ProbeResult.empty()
    return ProbeResult.found(min(event.block_number for event in events))


async def find_first_activity_block(
    pool: ProviderPool,
    contract_address: str,
    connection: RpcConnection | None = None,
    window: int = LOCATOR_WINDOW,
    cushion: int = LOCATOR_CUSHION,
    max_probes: int = LOCATOR_MAX_PROBES,
) -> int:
    """
    Find the earliest block with a Transfer log for the contract.

    Args:
        pool: Provider pool (default connection source)
        contract_address: Token contract address
        connection: Connection to probe with (default: pool cursor)
        window: Blocks covered by one probe
        cushion: Safety margin subtracted from the result
        max_probes: Hard cap on probe calls

    Returns:
        First-activity block minus the cushion, never below zero.
        If no activity is found the current height is used.

    Raises:
        ProviderUnreachable: If the chain height cannot be read
    """
    if connection is None:
        connection = pool.get_connection()

    latest = await connection.block_number()
    bounds = SearchBounds(lo=0, hi=latest, candidate=latest)
    probes = 0

    while not bounds.exhausted and probes < max_probes:
        mid = (bounds.lo + bounds.hi) // 2
        end = min(mid + window - 1, latest)
        probe = await probe_window(connection, contract_address, mid, end)
        probes += 1
        updated = next_bounds(bounds, mid, probe, window)
        if updated is None:
            logger.warning(
                f"[Locator] Probe at {mid} keeps failing, "
                f"stopping search with candidate {bounds.candidate}"
            )
            break
        bounds = updated

    first = max(0, bounds.candidate - cushion)
    logger.info(
        f"[Locator] First activity near block {bounds.candidate} "
        f"({probes} probes), scanning from {first}"
    )
    return first
