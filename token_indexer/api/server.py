"""
Stats HTTP server.

Builds the aiohttp application around one LedgerCacheService and
starts/stops it.
"""

import asyncio

from aiohttp import web
from loguru import logger

from token_indexer.services.ledger import LedgerCacheService

from .routes import LEDGER_KEY, setup_routes


def create_app(ledger: LedgerCacheService) -> web.Application:
    """
    Create the web application.

    Args:
        ledger: Process-wide ledger shared by all requests

    Returns:
        Configured aiohttp Application
    """
    app = web.Application()
    app[LEDGER_KEY] = ledger
    setup_routes(app)
    return app


async def start_server(
    app: web.Application,
    host: str = "0.0.0.0",
    port: int = 8080,
) -> tuple[web.AppRunner, web.TCPSite]:
    """
    Start stats server.

    Args:
        app: Application from create_app()
        host: Host to bind to
        port: Port to bind to

    Returns:
        Tuple of (AppRunner, TCPSite) for cleanup
    """
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Stats server started on {host}:{port}")
    logger.info(f"  - Token stats: http://{host}:{port}/api/token-stats")
    logger.info(f"  - Extended: http://{host}:{port}/api/token-extended")
    logger.info(f"  - Health: http://{host}:{port}/health")

    return runner, site


async def stop_server(
    runner: web.AppRunner,
    timeout: int = 5,
) -> None:
    """
    Stop stats server gracefully.

    Args:
        runner: AppRunner to cleanup
        timeout: Maximum time to wait for cleanup in seconds
    """
    logger.info("Stopping stats server...")
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
        logger.info("Stats server stopped successfully")
    except TimeoutError:
        logger.warning(f"Stats server cleanup timed out after {timeout}s")
    except Exception as e:
        logger.error(f"Error stopping stats server: {e}")
