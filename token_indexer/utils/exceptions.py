"""
Indexer exception hierarchy.

Defines categorized exception types for proper error handling.
Everything below the ledger read boundary raises one of these; the
ledger converts them into degraded responses.
"""

import aiohttp
from web3.exceptions import Web3Exception


class IndexerError(Exception):
    """Base exception for indexer errors."""
    pass


class ProviderError(IndexerError):
    """An RPC endpoint cannot be used."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(f"{url}: {message}")


class ProviderUnreachable(ProviderError):
    """Network, timeout or RPC failure contacting an endpoint."""
    pass


class RpcTimeoutError(ProviderUnreachable):
    """RPC call did not answer within the configured timeout."""
    pass


class WrongChain(ProviderError):
    """Endpoint answered with an unexpected chain ID."""

    def __init__(self, url: str, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(url, f"wrong chainId {actual} (expected {expected})")


class LogQueryFailed(IndexerError):
    """A log window failed on two providers in a row."""

    def __init__(self, from_block: int, to_block: int, cause: Exception) -> None:
        self.from_block = from_block
        self.to_block = to_block
        super().__init__(
            f"eth_getLogs {from_block}-{to_block} failed after rotation: {cause}"
        )


class AllProvidersExhausted(IndexerError):
    """Every configured endpoint failed verification."""
    pass


class DecimalsUnavailable(IndexerError):
    """decimals() could not be read; callers fall back to the default."""
    pass


# Exceptions treated as "this provider is broken, try another one"
PROVIDER_FAILURES = (
    IndexerError,
    Web3Exception,
    aiohttp.ClientError,
    ConnectionError,
    TimeoutError,
    OSError,
    ValueError,
)

