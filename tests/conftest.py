"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Keep test runs away from real RPC endpoints and log files
os.environ.setdefault("RPC_ENDPOINTS", "https://rpc-a.test,https://rpc-b.test,https://rpc-c.test")
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("WARM_UP_ON_START", "false")

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest  # noqa: E402

from fake_chain import URLS, FakeChain, FakeClock, FakeEndpoint, make_factory  # noqa: E402
from token_indexer.services.blockchain.provider_pool import ProviderPool  # noqa: E402
from token_indexer.services.ledger import LedgerCacheService  # noqa: E402


@pytest.fixture
def chain():
    """Empty BSC-like fake chain."""
    return FakeChain()


@pytest.fixture
def endpoints(chain):
    """Three healthy endpoints serving the same chain."""
    return {url: FakeEndpoint(chain) for url in URLS}


@pytest.fixture
def pool(endpoints):
    """Provider pool wired to the fake endpoints."""
    return ProviderPool(URLS, chain_id=56, timeout=5, web3_factory=make_factory(endpoints))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(pool, clock):
    """Ledger with small windows so tests exercise chunking."""
    return LedgerCacheService(
        pool,
        contract_address="0x46617e7bca14de818d9E5cFf2aa106b72CB33fe3",
        freshness_window=60,
        chunk_size=10,
        locator_window=16,
        locator_cushion=5,
        clock=clock,
    )
