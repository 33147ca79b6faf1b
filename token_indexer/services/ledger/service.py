"""
Ledger Cache Service.

Owns the process-wide LedgerState and the single read entry point.
Reads inside the freshness window are served from memory; otherwise the
ledger bootstraps (first time) or folds the new blocks (afterwards).

Key features:
- One in-flight sync at a time, concurrent callers share its result
- A sync survives the request that triggered it being abandoned
- Never raises to the caller: degraded numbers plus an error string
"""

import asyncio
import enum
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from token_indexer.config.constants import (
    FALLBACK_HOLDERS,
    FALLBACK_TOTAL_TRANSFERS,
    FRESHNESS_WINDOW_SECONDS,
    LOCATOR_CUSHION,
    LOCATOR_MAX_PROBES,
    LOCATOR_WINDOW,
    LOG_CHUNK_SIZE,
    TOP_HOLDERS_LIMIT,
)
from token_indexer.config.settings import Settings
from token_indexer.services.blockchain.chain_locator import find_first_activity_block
from token_indexer.services.blockchain.log_fetcher import fetch_logs
from token_indexer.services.blockchain.provider_pool import ProviderPool, RpcConnection
from token_indexer.services.blockchain.token_metadata import (
    fetch_token_metadata,
    fetch_total_supply,
)
from token_indexer.utils.exceptions import AllProvidersExhausted
from token_indexer.utils.security import mask_address

from .state import LedgerState


class LedgerPhase(enum.Enum):
    UNINITIALIZED = "uninitialized"
    BOOTSTRAPPING = "bootstrapping"
    READY = "ready"
    REFRESHING = "refreshing"


@dataclass(frozen=True)
class StatsSnapshot:
    """Holder/transfer numbers as served to the dashboard."""

    holders: int
    total_transfers: int
    updated_at_ms: int
    cached: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "holders": self.holders,
            "totalTransfers": self.total_transfers,
            "updatedAt": self.updated_at_ms,
            "cached": self.cached,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


class LedgerCacheService:
    """
    In-memory token ledger with bootstrap and incremental refresh.

    Construct once per process and share it between requests.
    """

    def __init__(
        self,
        pool: ProviderPool,
        contract_address: str,
        freshness_window: float = FRESHNESS_WINDOW_SECONDS,
        chunk_size: int = LOG_CHUNK_SIZE,
        locator_window: int = LOCATOR_WINDOW,
        locator_cushion: int = LOCATOR_CUSHION,
        locator_max_probes: int = LOCATOR_MAX_PROBES,
        start_block: int | None = None,
        fallback_holders: int = FALLBACK_HOLDERS,
        fallback_transfers: int = FALLBACK_TOTAL_TRANSFERS,
        top_holders_limit: int = TOP_HOLDERS_LIMIT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize ledger cache.

        Args:
            pool: Provider pool shared by all syncs
            contract_address: Token contract to index
            freshness_window: Seconds during which reads skip the network
            chunk_size: eth_getLogs window size
            locator_window: First-block search probe window
            locator_cushion: Blocks subtracted from the located first block
            locator_max_probes: First-block search call budget
            start_block: Known first block, bypasses the first-activity search
            fallback_holders: Served before the first successful bootstrap
            fallback_transfers: Served before the first successful bootstrap
            top_holders_limit: Holders listed by the extended stats
            clock: Wall clock in epoch seconds
        """
        self.pool = pool
        self.contract_address = contract_address
        self.freshness_window = freshness_window
        self.chunk_size = chunk_size
        self.locator_window = locator_window
        self.locator_cushion = locator_cushion
        self.locator_max_probes = locator_max_probes
        self.start_block = start_block
        self.fallback_holders = fallback_holders
        self.fallback_transfers = fallback_transfers
        self.top_holders_limit = top_holders_limit
        self.clock = clock

        self._state = LedgerState()
        self._phase = LedgerPhase.UNINITIALIZED
        self._inflight: asyncio.Task | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings, pool: ProviderPool | None = None
    ) -> "LedgerCacheService":
        """Build the service (and its pool, unless given) from settings."""
        if pool is None:
            pool = ProviderPool(
                settings.rpc_endpoint_list,
                chain_id=settings.chain_id,
                timeout=settings.rpc_call_timeout,
            )
        return cls(
            pool=pool,
            contract_address=settings.token_contract_address,
            freshness_window=settings.freshness_window_seconds,
            chunk_size=settings.log_chunk_size,
            locator_window=settings.locator_window,
            locator_cushion=settings.locator_cushion,
            locator_max_probes=settings.locator_max_probes,
            start_block=settings.token_start_block,
            fallback_holders=settings.fallback_holders,
            fallback_transfers=settings.fallback_transfers,
            top_holders_limit=settings.top_holders_limit,
        )

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def phase(self) -> LedgerPhase:
        return self._phase

    @property
    def initialized(self) -> bool:
        return self._state.initialized

    def holder_count(self) -> int:
        return self._state.holder_count()

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    async def bootstrap(self, connection: RpcConnection) -> None:
        """
        Full historical scan: first-activity block up to the chain head.

        The new state replaces the current one only after every window
        was fetched, so a failed bootstrap leaves nothing half-folded.
        """
        logger.info(
            f"[Ledger] Bootstrapping {mask_address(self.contract_address)} "
            f"via {connection.url}"
        )
        started = time.monotonic()

        if self.start_block is not None:
            first_block = self.start_block
            logger.info(f"[Ledger] Using configured start block {first_block}")
        else:
            first_block = await find_first_activity_block(
                self.pool,
                self.contract_address,
                connection=connection,
                window=self.locator_window,
                cushion=self.locator_cushion,
                max_probes=self.locator_max_probes,
            )
        latest = await connection.block_number()
        events = await fetch_logs(
            self.pool,
            self.contract_address,
            first_block,
            latest,
            connection=connection,
            chain_height=latest,
            chunk_size=self.chunk_size,
        )

        state = LedgerState(first_block=first_block)
        state.fold(events)
        state.metadata = await fetch_token_metadata(connection, self.contract_address)
        state.advance(latest, self.clock())
        state.updated_at = max(state.updated_at, self._state.updated_at)
        state.initialized = True
        self._state = state

        logger.success(
            f"[Ledger] Bootstrap complete: blocks {first_block}-{latest}, "
            f"{state.total_transfers} transfers, {state.holder_count()} holders "
            f"({time.monotonic() - started:.1f}s)"
        )

    async def refresh(self, connection: RpcConnection) -> None:
        """Fold blocks newer than last_block_processed into the ledger."""
        state = self._state
        latest = await connection.block_number()
        if latest <= state.last_block_processed:
            logger.debug(
                f"[Ledger] Chain at {latest}, nothing new after "
                f"{state.last_block_processed}"
            )
            return

        from_block = state.last_block_processed + 1
        events = await fetch_logs(
            self.pool,
            self.contract_address,
            from_block,
            latest,
            connection=connection,
            chain_height=latest,
            chunk_size=self.chunk_size,
        )
        folded = state.fold(events)
        state.advance(latest, self.clock())

        total_supply = await fetch_total_supply(connection, self.contract_address)
        if total_supply is not None:
            state.metadata.total_supply = total_supply

        logger.info(
            f"[Ledger] Refreshed {from_block}-{latest}: +{folded} transfers, "
            f"{state.holder_count()} holders"
        )

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def is_fresh(self) -> bool:
        """True if the cached numbers may be served without RPC calls."""
        return (
            self._state.initialized
            and self.clock() - self._state.updated_at < self.freshness_window
        )

    def _snapshot(self, cached: bool) -> StatsSnapshot:
        return StatsSnapshot(
            holders=self._state.holder_count(),
            total_transfers=self._state.total_transfers,
            updated_at_ms=int(self._state.updated_at * 1000),
            cached=cached,
        )

    def degraded_snapshot(self, error: str) -> StatsSnapshot:
        """Best available numbers when the chain cannot be read."""
        state = self._state
        updated_at = state.updated_at or self.clock()
        return StatsSnapshot(
            holders=state.holder_count() if state.initialized else self.fallback_holders,
            total_transfers=(
                state.total_transfers if state.initialized else self.fallback_transfers
            ),
            updated_at_ms=int(updated_at * 1000),
            cached=True,
            error=error,
        )

    async def _sync(self) -> StatsSnapshot:
        bootstrapping = not self._state.initialized
        try:
            connection = await self.pool.acquire_verified()
            self._phase = (
                LedgerPhase.BOOTSTRAPPING if bootstrapping else LedgerPhase.REFRESHING
            )
            if bootstrapping:
                await self.bootstrap(connection)
            else:
                await self.refresh(connection)
        except AllProvidersExhausted as e:
            return self.degraded_snapshot(str(e))
        except Exception as e:
            action = "Bootstrap" if bootstrapping else "Refresh"
            logger.error(f"[Ledger] {action} failed: {type(e).__name__}: {e}")
            self.pool.invalidate()
            return self.degraded_snapshot(str(e) or type(e).__name__)
        finally:
            self._phase = (
                LedgerPhase.READY if self._state.initialized
                else LedgerPhase.UNINITIALIZED
            )

        return self._snapshot(cached=False)

    def _clear_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None

    async def get_stats(self) -> StatsSnapshot:
        """
        Holder count and transfer total for the dashboard.

        Returns:
            Cached snapshot inside the freshness window, otherwise the
            result of the (shared) sync; never raises
        """
        if self.is_fresh():
            return self._snapshot(cached=True)

        if self._inflight is None:
            task = asyncio.get_running_loop().create_task(self._sync())
            task.add_done_callback(self._clear_inflight)
            self._inflight = task
        else:
            logger.debug("[Ledger] Joining in-flight sync")

        # shield: a disconnected client must not cancel the shared sync
        return await asyncio.shield(self._inflight)

    async def get_extended_stats(self) -> dict[str, Any]:
        """
        Dashboard stats plus token metadata and the largest holders.

        Returns:
            JSON-ready dict; never raises
        """
        snapshot = await self.get_stats()
        state = self._state
        metadata = state.metadata

        payload = snapshot.to_dict()
        payload.update(
            {
                "decimals": metadata.decimals,
                "name": metadata.name,
                "symbol": metadata.symbol,
                "totalSupply": (
                    str(metadata.total_supply)
                    if metadata.total_supply is not None else None
                ),
                "totalSupplyFormatted": (
                    str(metadata.to_units(metadata.total_supply))
                    if metadata.total_supply is not None else None
                ),
                "firstBlock": state.first_block if state.initialized else None,
                "lastBlockProcessed": (
                    state.last_block_processed if state.initialized else None
                ),
                "topHolders": [
                    holder.to_dict(metadata)
                    for holder in state.top_holders(self.top_holders_limit)
                ],
                "provider": self.pool.current_url,
                "phase": self._phase.value,
                "source": "onchain" if state.initialized else "fallback",
            }
        )
        return payload
