"""Integration tests for the stats HTTP API."""

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient as HttpClient
from aiohttp.test_utils import TestServer as HttpServer

from fake_chain import URLS, FakeEndpoint, addr, make_factory
from token_indexer.api import create_app
from token_indexer.services.blockchain.provider_pool import ProviderPool
from token_indexer.services.ledger import LedgerCacheService

TOKEN = "0x46617e7bca14de818d9E5cFf2aa106b72CB33fe3"


@pytest_asyncio.fixture
async def client(ledger):
    async with HttpClient(HttpServer(create_app(ledger))) as test_client:
        yield test_client


@pytest.fixture
def funded_chain(chain):
    chain.mint(1, addr(1), 500)
    chain.transfer(4, addr(1), addr(2), 200)
    return chain


class TestTokenStats:
    @pytest.mark.asyncio
    async def test_token_stats(self, client, funded_chain):
        response = await client.get("/api/token-stats")

        assert response.status == 200
        body = await response.json()
        assert body["holders"] == 2
        assert body["totalTransfers"] == 2
        assert body["cached"] is False
        assert isinstance(body["updatedAt"], int)
        assert "error" not in body

    @pytest.mark.asyncio
    async def test_second_read_is_cached(self, client, funded_chain):
        await client.get("/api/token-stats")

        body = await (await client.get("/api/token-stats")).json()

        assert body["cached"] is True

    @pytest.mark.asyncio
    async def test_outage_still_answers_200(self, chain, clock):
        endpoints = {url: FakeEndpoint(chain, unreachable=True) for url in URLS}
        pool = ProviderPool(URLS, web3_factory=make_factory(endpoints))
        ledger = LedgerCacheService(pool, TOKEN, clock=clock)

        async with HttpClient(HttpServer(create_app(ledger))) as client:
            response = await client.get("/api/token-stats")
            body = await response.json()

        assert response.status == 200
        assert body["holders"] == 301
        assert body["totalTransfers"] == 331
        assert body["cached"] is True
        assert body["error"]

    @pytest.mark.asyncio
    async def test_unexpected_error_still_answers_200(self, ledger, monkeypatch):
        async def explode():
            raise RuntimeError("boom")

        monkeypatch.setattr(ledger, "get_stats", explode)

        async with HttpClient(HttpServer(create_app(ledger))) as client:
            response = await client.get("/api/token-stats")
            body = await response.json()

        assert response.status == 200
        assert body["holders"] == 301
        assert body["error"] == "RuntimeError: boom"


class TestTokenExtended:
    @pytest.mark.asyncio
    async def test_token_extended(self, client, funded_chain):
        response = await client.get("/api/token-extended")

        assert response.status == 200
        body = await response.json()
        assert body["source"] == "onchain"
        assert body["symbol"] == "PGC"
        assert body["lastBlockProcessed"] == 4
        assert [h["address"] for h in body["topHolders"]] == [addr(1), addr(2)]


class TestHealth:
    @pytest.mark.asyncio
    async def test_liveness(self, client):
        response = await client.get("/liveness")

        assert response.status == 200
        assert (await response.json())["alive"] is True

    @pytest.mark.asyncio
    async def test_readiness_before_and_after_bootstrap(self, client, funded_chain):
        response = await client.get("/readiness")
        assert response.status == 503

        await client.get("/api/token-stats")

        response = await client.get("/readiness")
        assert response.status == 200
        assert (await response.json())["ready"] is True

    @pytest.mark.asyncio
    async def test_health_reports_ledger_and_pool(self, client, funded_chain):
        await client.get("/api/token-stats")

        body = await (await client.get("/health")).json()

        assert body["status"] == "healthy"
        assert body["initialized"] is True
        assert body["phase"] == "ready"
        assert body["last_block_processed"] == 4
        assert body["providers"]["providers_count"] == 3

    @pytest.mark.asyncio
    async def test_unexpected_error_after_bootstrap_keeps_ledger_numbers(
        self, client, ledger, funded_chain, monkeypatch
    ):
        await client.get("/api/token-stats")

        async def explode():
            raise RuntimeError("boom")

        monkeypatch.setattr(ledger, "get_stats", explode)
        response = await client.get("/api/token-stats")
        body = await response.json()

        assert response.status == 200
        assert body["holders"] == 2
        assert body["totalTransfers"] == 2
        assert body["cached"] is True
        assert body["error"] == "RuntimeError: boom"
