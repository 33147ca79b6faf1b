"""
Indexer main entry point.

Builds the provider pool and ledger once for the whole process and
serves the stats API until interrupted.
"""

import asyncio
import warnings

from loguru import logger

# eth_utils warns about unknown ChainIds on import; irrelevant here
warnings.filterwarnings(
    "ignore",
    message=".*does not have a valid ChainId.*",
    category=UserWarning,
)

from token_indexer.api import create_app, start_server, stop_server  # noqa: E402
from token_indexer.config.settings import settings  # noqa: E402
from token_indexer.initialization.logging import setup_logging  # noqa: E402
from token_indexer.services.ledger import LedgerCacheService  # noqa: E402


async def warm_up(ledger: LedgerCacheService) -> None:
    """Run the first sync so the first visitor does not wait for it."""
    snapshot = await ledger.get_stats()
    if snapshot.error:
        logger.warning(f"Warm-up finished degraded: {snapshot.error}")
    else:
        logger.info(
            f"Warm-up done: {snapshot.holders} holders, "
            f"{snapshot.total_transfers} transfers"
        )


async def main() -> None:
    """Initialize and run the indexer."""
    setup_logging(settings.log_level, settings.log_file)

    ledger = LedgerCacheService.from_settings(settings)
    app = create_app(ledger)
    runner, _site = await start_server(app, settings.api_host, settings.api_port)

    warm_up_task = None
    if settings.warm_up_on_start:
        warm_up_task = asyncio.create_task(warm_up(ledger))

    try:
        await asyncio.Event().wait()
    finally:
        if warm_up_task is not None and not warm_up_task.done():
            warm_up_task.cancel()
        await stop_server(runner)


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Indexer stopped by user")


if __name__ == "__main__":
    run()
