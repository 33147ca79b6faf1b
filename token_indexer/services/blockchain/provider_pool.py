"""
Web3 provider pool with rotation-on-failure.

This module handles:
- Ordered list of public RPC endpoints for one chain
- Lazy AsyncWeb3 connections bound to a single endpoint
- Endpoint verification (reachability + chain ID)
- Shared rotation cursor across all requests
"""

from collections.abc import Callable
from typing import Any

import aiohttp
from eth_utils import to_checksum_address
from loguru import logger
from web3 import AsyncWeb3

from token_indexer.config.constants import (
    BSC_CHAIN_ID,
    RPC_CALL_TIMEOUT,
    RPC_HTTP_TIMEOUT,
)
from token_indexer.utils.exceptions import (
    PROVIDER_FAILURES,
    AllProvidersExhausted,
    ProviderUnreachable,
    WrongChain,
)

from .rpc_wrapper import with_timeout


def default_web3_factory(url: str) -> AsyncWeb3:
    """Build an AsyncWeb3 bound to one HTTP endpoint (no I/O happens here)."""
    return AsyncWeb3(
        AsyncWeb3.AsyncHTTPProvider(
            url,
            request_kwargs={"timeout": aiohttp.ClientTimeout(total=RPC_HTTP_TIMEOUT)},
        )
    )


class RpcConnection:
    """
    One endpoint's web3 client with every call bounded by a timeout.

    Constructing a connection never fails; errors appear on first call.
    """

    def __init__(self, url: str, w3: Any, timeout: float = RPC_CALL_TIMEOUT) -> None:
        self.url = url
        self.w3 = w3
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"RpcConnection({self.url!r})"

    async def block_number(self) -> int:
        """Current chain height."""
        return int(
            await with_timeout(
                self.w3.eth.block_number, self.timeout, "eth_blockNumber", self.url
            )
        )

    async def chain_id(self) -> int:
        """Chain identifier reported by the node."""
        return int(
            await with_timeout(
                self.w3.eth.chain_id, self.timeout, "eth_chainId", self.url
            )
        )

    async def get_logs(
        self,
        address: str,
        topics: list[str],
        from_block: int,
        to_block: int,
    ) -> list[Any]:
        """Raw eth_getLogs for one contract and topic filter."""
        params = {
            "address": to_checksum_address(address),
            "topics": topics,
            "fromBlock": from_block,
            "toBlock": to_block,
        }
        return list(
            await with_timeout(
                self.w3.eth.get_logs(params),
                self.timeout,
                f"eth_getLogs {from_block}-{to_block}",
                self.url,
            )
        )

    async def call_contract(
        self, address: str, abi: list[dict], function_name: str
    ) -> Any:
        """Read-only contract call without arguments (decimals, symbol...)."""
        contract = self.w3.eth.contract(
            address=to_checksum_address(address), abi=abi
        )
        function = getattr(contract.functions, function_name)
        return await with_timeout(
            function().call(), self.timeout, f"{function_name}()", self.url
        )


class ProviderPool:
    """
    Prioritized RPC endpoints with a process-wide rotation cursor.

    Usage:
        pool = ProviderPool(["https://bsc.publicnode.com", ...])
        connection = await pool.acquire_verified()
        height = await connection.block_number()
    """

    def __init__(
        self,
        endpoints: list[str],
        chain_id: int = BSC_CHAIN_ID,
        timeout: float = RPC_CALL_TIMEOUT,
        web3_factory: Callable[[str], Any] | None = None,
    ) -> None:
        """
        Initialize provider pool.

        Args:
            endpoints: RPC URLs in priority order
            chain_id: Chain ID every endpoint must report
            timeout: Per-call timeout in seconds
            web3_factory: Builds a web3 client for a URL (tests inject fakes)
        """
        if not endpoints:
            raise ValueError("At least one RPC endpoint must be specified")

        self.endpoints = list(endpoints)
        self.chain_id = chain_id
        self.timeout = timeout
        self.web3_factory = web3_factory or default_web3_factory
        self.provider_index = 0
        self._verified: RpcConnection | None = None

        logger.info(
            f"[Pool] Initialized with {len(self.endpoints)} endpoints "
            f"for chainId {chain_id}"
        )

    @property
    def current_url(self) -> str:
        return self.endpoints[self.provider_index % len(self.endpoints)]

    def get_connection(self, url_override: str | None = None) -> RpcConnection:
        """
        Get a connection for the override URL or the current cursor.

        Args:
            url_override: One-off endpoint, does not touch the cursor

        Returns:
            Lazily connected RpcConnection
        """
        url = url_override or self.current_url
        return RpcConnection(url, self.web3_factory(url), self.timeout)

    def rotate(self, url_override: str | None = None) -> RpcConnection:
        """
        Advance the cursor to the next endpoint and connect to it.

        Moving the cursor drops the cached verified connection, so the
        next acquire_verified() starts from the new endpoint.

        Args:
            url_override: If given, the cursor is left untouched

        Returns:
            Connection for the new cursor position (or the override)
        """
        if not url_override:
            old_url = self.current_url
            self.provider_index = (self.provider_index + 1) % len(self.endpoints)
            self._verified = None
            logger.info(f"[Pool] Rotating provider: {old_url} -> {self.current_url}")
        return self.get_connection(url_override)

    async def verify(self, connection: RpcConnection) -> int:
        """
        Check the endpoint answers and serves the expected chain.

        Args:
            connection: Connection to verify

        Returns:
            Current block height reported by the endpoint

        Raises:
            ProviderUnreachable: Network, timeout or RPC failure
            WrongChain: Endpoint serves another network
        """
        try:
            actual_chain_id = await connection.chain_id()
            height = await connection.block_number()
        except ProviderUnreachable:
            raise
        except PROVIDER_FAILURES as e:
            raise ProviderUnreachable(connection.url, f"{type(e).__name__}: {e}") from e

        if actual_chain_id != self.chain_id:
            raise WrongChain(connection.url, self.chain_id, actual_chain_id)
        return height

    async def acquire_verified(self) -> RpcConnection:
        """
        Return a verified connection, trying each endpoint at most once.

        The last verified connection is reused until invalidate() is
        called or the cursor rotates.

        Returns:
            Verified RpcConnection

        Raises:
            AllProvidersExhausted: If every endpoint failed verification
        """
        if self._verified is not None:
            return self._verified

        errors: list[str] = []
        connection = self.get_connection()
        for attempt in range(len(self.endpoints)):
            try:
                height = await self.verify(connection)
            except (ProviderUnreachable, WrongChain) as e:
                logger.warning(f"[Pool] Provider verification failed: {e}")
                errors.append(str(e))
                if attempt < len(self.endpoints) - 1:
                    connection = self.rotate()
                continue

            logger.info(
                f"[Pool] Using provider {connection.url} (block {height})"
            )
            self._verified = connection
            return connection

        # Leave the cursor past the last failed endpoint for the next attempt
        self.rotate()
        logger.error(
            f"[Pool] All {len(self.endpoints)} RPC endpoints failed verification"
        )
        raise AllProvidersExhausted(
            "All RPC endpoints failed to detect BSC network: " + "; ".join(errors)
        )

    def invalidate(self) -> None:
        """Forget the cached verified connection."""
        if self._verified is not None:
            logger.debug(f"[Pool] Dropping verified provider {self._verified.url}")
        self._verified = None

    def get_stats(self) -> dict[str, Any]:
        """
        Get pool status.

        Returns:
            Dict with endpoints count, current endpoint and verification flag
        """
        return {
            "providers_count": len(self.endpoints),
            "current_provider": self.current_url,
            "provider_index": self.provider_index,
            "verified": self._verified is not None,
        }
