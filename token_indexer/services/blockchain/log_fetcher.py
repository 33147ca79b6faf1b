"""
Windowed Transfer log fetcher.

Scans [from_block, to_block] in contiguous windows to stay under the
block-range limit public nodes enforce on eth_getLogs. A failed window
is retried exactly once on the next provider; a second failure aborts
the whole fetch.
"""

from loguru import logger

from token_indexer.config.constants import LOG_CHUNK_SIZE, TRANSFER_TOPIC
from token_indexer.utils.exceptions import PROVIDER_FAILURES, LogQueryFailed

from .events import TransferEvent, decode_transfer_logs
from .provider_pool import ProviderPool, RpcConnection


def iter_windows(from_block: int, to_block: int, chunk_size: int):
    """
    Yield inclusive (start, end) windows covering the range.

    Each window spans at most chunk_size + 1 blocks; consecutive windows
    neither overlap nor leave gaps.
    """
    start = from_block
    while start <= to_block:
        end = min(start + chunk_size, to_block)
        yield start, end
        start = end + 1


async def fetch_logs(
    pool: ProviderPool,
    contract_address: str,
    from_block: int,
    to_block: int,
    connection: RpcConnection | None = None,
    chain_height: int | None = None,
    chunk_size: int = LOG_CHUNK_SIZE,
) -> list[TransferEvent]:
    """
    Fetch every Transfer log of the contract within a block range.

    Args:
        pool: Provider pool used for rotation on failure
        contract_address: Token contract address
        from_block: First block (inclusive)
        to_block: Last block (inclusive)
        connection: Connection to start with (default: pool cursor)
        chain_height: If given, to_block is clamped to it
        chunk_size: Maximum span of one eth_getLogs request

    Returns:
        Events ordered by block number, then log index (node order)

    Raises:
        LogQueryFailed: If a window failed on two providers
    """
    if chain_height is not None:
        to_block = min(to_block, chain_height)
    if from_block > to_block:
        return []

    if connection is None:
        connection = pool.get_connection()

    events: list[TransferEvent] = []
    windows = 0
    for start, end in iter_windows(from_block, to_block, chunk_size):
        try:
            logs = await connection.get_logs(
                contract_address, [TRANSFER_TOPIC], start, end
            )
        except PROVIDER_FAILURES as first_error:
            logger.warning(
                f"[Fetcher] Window {start}-{end} failed on {connection.url}: "
                f"{first_error}. Retrying on next provider..."
            )
            connection = pool.rotate()
            try:
                logs = await connection.get_logs(
                    contract_address, [TRANSFER_TOPIC], start, end
                )
            except PROVIDER_FAILURES as retry_error:
                logger.error(
                    f"[Fetcher] Window {start}-{end} failed again on "
                    f"{connection.url}: {retry_error}"
                )
                raise LogQueryFailed(start, end, retry_error) from retry_error

        events.extend(decode_transfer_logs(logs))
        windows += 1

        if windows % 50 == 0:
            progress = (end - from_block + 1) / (to_block - from_block + 1) * 100
            logger.info(
                f"[Fetcher] Progress: {progress:.1f}% "
                f"({windows} windows, {len(events)} transfers)"
            )

    logger.debug(
        f"[Fetcher] {from_block}-{to_block}: {len(events)} transfers "
        f"in {windows} windows"
    )
    return events
