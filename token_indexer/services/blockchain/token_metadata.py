"""
Token metadata reads.

decimals(), name(), symbol() and totalSupply() are enrichment only:
none of them may fail a bootstrap or refresh.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from loguru import logger

from token_indexer.config.constants import DEFAULT_TOKEN_DECIMALS, ERC20_ABI
from token_indexer.utils.exceptions import PROVIDER_FAILURES, DecimalsUnavailable

from .provider_pool import RpcConnection


@dataclass
class TokenMetadata:
    decimals: int = DEFAULT_TOKEN_DECIMALS
    name: str | None = None
    symbol: str | None = None
    total_supply: int | None = None

    def to_units(self, raw: int) -> Decimal:
        """Raw integer amount to human-readable token units."""
        return Decimal(raw) / Decimal(10**self.decimals)


async def fetch_decimals(connection: RpcConnection, contract_address: str) -> int:
    """
    Read decimals() from the token contract.

    Raises:
        DecimalsUnavailable: If the call fails or returns garbage
    """
    try:
        decimals = int(
            await connection.call_contract(contract_address, ERC20_ABI, "decimals")
        )
    except PROVIDER_FAILURES as e:
        raise DecimalsUnavailable(f"decimals() failed on {connection.url}: {e}") from e
    if not 0 <= decimals <= 255:
        raise DecimalsUnavailable(f"decimals() returned {decimals}")
    return decimals


async def _optional_call(
    connection: RpcConnection, contract_address: str, function_name: str
) -> Any:
    try:
        return await connection.call_contract(
            contract_address, ERC20_ABI, function_name
        )
    except PROVIDER_FAILURES as e:
        logger.debug(f"[Metadata] {function_name}() unavailable: {e}")
        return None


async def fetch_total_supply(
    connection: RpcConnection, contract_address: str
) -> int | None:
    """totalSupply() as a raw integer, None if unavailable."""
    value = await _optional_call(connection, contract_address, "totalSupply")
    return int(value) if value is not None else None


async def fetch_token_metadata(
    connection: RpcConnection, contract_address: str
) -> TokenMetadata:
    """
    Read all metadata, substituting defaults for anything that fails.

    Args:
        connection: Connection to read with
        contract_address: Token contract address

    Returns:
        TokenMetadata (decimals defaults to 18)
    """
    metadata = TokenMetadata()
    try:
        metadata.decimals = await fetch_decimals(connection, contract_address)
    except DecimalsUnavailable as e:
        logger.warning(
            f"[Metadata] {e}; using default {DEFAULT_TOKEN_DECIMALS} decimals"
        )

    metadata.name = await _optional_call(connection, contract_address, "name")
    metadata.symbol = await _optional_call(connection, contract_address, "symbol")
    metadata.total_supply = await fetch_total_supply(connection, contract_address)
    return metadata
