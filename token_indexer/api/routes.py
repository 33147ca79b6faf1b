"""
HTTP handlers.

Token stats endpoints for the dashboard plus health checks. The stats
endpoints always answer 200: failures travel in the "error" field.
"""

from aiohttp import web
from loguru import logger

from token_indexer.services.ledger import LedgerCacheService

LEDGER_KEY = web.AppKey("ledger", LedgerCacheService)


def _last_resort_payload(ledger: LedgerCacheService, error: Exception) -> dict:
    return ledger.degraded_snapshot(f"{type(error).__name__}: {error}").to_dict()


async def token_stats_handler(request: web.Request) -> web.Response:
    """
    Holder count and total transfers.

    Returns:
        JSON {holders, totalTransfers, updatedAt, cached, error?}
    """
    ledger = request.app[LEDGER_KEY]
    try:
        snapshot = await ledger.get_stats()
    except Exception as e:
        logger.exception(f"[API] token-stats failed unexpectedly: {e}")
        return web.json_response(_last_resort_payload(ledger, e))
    return web.json_response(snapshot.to_dict())


async def token_extended_handler(request: web.Request) -> web.Response:
    """
    Token stats plus metadata and top holders.

    Returns:
        JSON with the token-stats fields, decimals, supply and holders
    """
    ledger = request.app[LEDGER_KEY]
    try:
        payload = await ledger.get_extended_stats()
    except Exception as e:
        logger.exception(f"[API] token-extended failed unexpectedly: {e}")
        return web.json_response(_last_resort_payload(ledger, e))
    return web.json_response(payload)


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Returns:
        JSON response with ledger and provider status
    """
    ledger = request.app[LEDGER_KEY]
    state = ledger.state
    return web.json_response(
        {
            "status": "healthy",
            "phase": ledger.phase.value,
            "initialized": state.initialized,
            "last_block_processed": state.last_block_processed,
            "holders": state.holder_count(),
            "providers": ledger.pool.get_stats(),
        }
    )


async def readiness_handler(request: web.Request) -> web.Response:
    """
    Readiness check endpoint.

    Returns:
        503 until the first bootstrap succeeded
    """
    ledger = request.app[LEDGER_KEY]
    if not ledger.initialized:
        return web.json_response(
            {
                "status": "not_ready",
                "ready": False,
            },
            status=503,
        )

    return web.json_response(
        {
            "status": "ready",
            "ready": True,
        }
    )


async def liveness_handler(request: web.Request) -> web.Response:
    """
    Liveness check endpoint.

    Returns:
        JSON response indicating if the process is alive
    """
    return web.json_response(
        {
            "status": "alive",
            "alive": True,
        }
    )


def setup_routes(app: web.Application) -> None:
    app.router.add_get("/api/token-stats", token_stats_handler)
    app.router.add_get("/api/token-extended", token_extended_handler)
    app.router.add_get("/health", health_handler)
    app.router.add_get("/readiness", readiness_handler)
    app.router.add_get("/liveness", liveness_handler)
