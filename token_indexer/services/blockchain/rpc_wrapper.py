"""
RPC Wrapper with Timeout.

Bounds every blockchain RPC call so a hung public node behaves like a
failed one and triggers provider rotation.
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from loguru import logger

from token_indexer.config.constants import RPC_CALL_TIMEOUT
from token_indexer.utils.exceptions import RpcTimeoutError

T = TypeVar("T")


async def with_timeout(
    coro: Awaitable[T],
    timeout: float = RPC_CALL_TIMEOUT,
    operation_name: str = "RPC call",
    url: str = "",
) -> T:
    """
    Execute async RPC coroutine with timeout.

    Args:
        coro: Coroutine to execute
        timeout: Timeout in seconds (default: RPC_CALL_TIMEOUT)
        operation_name: Operation name for logging
        url: Endpoint the call was sent to

    Returns:
        Result of the coroutine

    Raises:
        RpcTimeoutError: If operation times out
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except TimeoutError as e:
        error_msg = f"{operation_name} timed out after {timeout}s"
        logger.warning(f"[RPC] {error_msg} ({url or 'unknown endpoint'})")
        raise RpcTimeoutError(url, error_msg) from e
