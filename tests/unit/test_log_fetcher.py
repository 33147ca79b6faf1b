"""
Tests for the windowed log fetcher.

Tests cover:
- Window partitioning (contiguous, no overlap, bounded span)
- Empty and clamped ranges
- Single rotation retry per window, abort on second failure
"""

import pytest

from fake_chain import URLS, FakeChain, FakeEndpoint, addr, make_factory
from token_indexer.services.blockchain.log_fetcher import fetch_logs, iter_windows
from token_indexer.services.blockchain.provider_pool import ProviderPool
from token_indexer.utils.exceptions import LogQueryFailed

TOKEN = "0x46617e7bca14de818d9E5cFf2aa106b72CB33fe3"


def _pool(endpoints: dict[str, FakeEndpoint]) -> ProviderPool:
    return ProviderPool(list(endpoints), web3_factory=make_factory(endpoints))


@pytest.fixture
def busy_chain():
    chain = FakeChain()
    chain.mint(3, addr(1), 1_000)
    for block in range(5, 95, 7):
        chain.transfer(block, addr(1), addr(2), 10)
        chain.transfer(block, addr(2), addr(3), 3)
    chain.height = 100
    return chain


class TestIterWindows:
    def test_windows_cover_range_exactly(self):
        windows = list(iter_windows(10, 45, 10))

        assert windows == [(10, 20), (21, 31), (32, 42), (43, 45)]

    def test_single_block_range(self):
        assert list(iter_windows(7, 7, 3000)) == [(7, 7)]

    def test_empty_when_reversed(self):
        assert list(iter_windows(8, 7, 3000)) == []

    def test_span_never_exceeds_chunk(self):
        for start, end in iter_windows(0, 100_000, 3000):
            assert end - start <= 3000


class TestFetchLogs:
    @pytest.mark.asyncio
    async def test_fetches_all_events_in_order(self, busy_chain):
        endpoints = {URLS[0]: FakeEndpoint(busy_chain)}

        events = await fetch_logs(_pool(endpoints), TOKEN, 0, 100, chunk_size=10)

        assert len(events) == len(busy_chain.logs)
        keys = [(e.block_number, e.log_index) for e in events]
        assert keys == sorted(keys)
        assert events[0].value == 1_000

    @pytest.mark.asyncio
    async def test_respects_provider_range_limit(self, busy_chain):
        endpoint = FakeEndpoint(busy_chain, max_span=11)
        endpoints = {URLS[0]: endpoint}

        events = await fetch_logs(_pool(endpoints), TOKEN, 0, 100, chunk_size=10)

        assert len(events) == len(busy_chain.logs)
        assert all(end - start + 1 <= 11 for start, end in endpoint.log_ranges())

    @pytest.mark.asyncio
    async def test_from_after_to_is_empty(self, busy_chain):
        endpoints = {URLS[0]: FakeEndpoint(busy_chain)}

        events = await fetch_logs(_pool(endpoints), TOKEN, 101, 100)

        assert events == []
        assert endpoints[URLS[0]].calls == []

    @pytest.mark.asyncio
    async def test_to_block_clamped_to_chain_height(self, busy_chain):
        endpoint = FakeEndpoint(busy_chain)
        endpoints = {URLS[0]: endpoint}

        events = await fetch_logs(
            _pool(endpoints), TOKEN, 50, 10**9, chain_height=100, chunk_size=1000
        )

        assert endpoint.log_ranges() == [(50, 100)]
        assert all(50 <= e.block_number <= 100 for e in events)

    @pytest.mark.asyncio
    async def test_clamping_can_empty_the_range(self, busy_chain):
        endpoints = {URLS[0]: FakeEndpoint(busy_chain)}

        events = await fetch_logs(_pool(endpoints), TOKEN, 101, 200, chain_height=100)

        assert events == []

    @pytest.mark.asyncio
    async def test_failed_window_retried_once_on_next_provider(self, busy_chain):
        first = FakeEndpoint(busy_chain, log_failures=1)
        second = FakeEndpoint(busy_chain)
        endpoints = {URLS[0]: first, URLS[1]: second}
        pool = _pool(endpoints)

        events = await fetch_logs(pool, TOKEN, 0, 100, chunk_size=10)

        assert len(events) == len(busy_chain.logs)
        assert pool.provider_index == 1
        assert first.log_ranges() == [(0, 10)]
        # Retried window plus every later window on the rotated provider
        assert second.log_ranges()[0] == (0, 10)
        assert len(second.log_ranges()) == 10

    @pytest.mark.asyncio
    async def test_second_failure_aborts_fetch(self, busy_chain):
        first = FakeEndpoint(busy_chain)
        second = FakeEndpoint(busy_chain, log_failures=-1)
        third = FakeEndpoint(busy_chain, log_failures=-1)
        endpoints = {URLS[0]: first, URLS[1]: second, URLS[2]: third}
        pool = _pool(endpoints)

        with pytest.raises(LogQueryFailed) as exc_info:
            await fetch_logs(pool, TOKEN, 0, 100, chunk_size=10, connection=pool.rotate())

        assert exc_info.value.from_block == 0
        assert exc_info.value.to_block == 10
        # Exactly one retry: the third endpoint is hit once, never the first
        assert len(second.log_ranges()) == 1
        assert len(third.log_ranges()) == 1
        assert first.log_ranges() == []

    @pytest.mark.asyncio
    async def test_unreachable_provider_counts_as_failure(self, busy_chain):
        endpoints = {
            URLS[0]: FakeEndpoint(busy_chain, unreachable=True),
            URLS[1]: FakeEndpoint(busy_chain),
        }

        events = await fetch_logs(_pool(endpoints), TOKEN, 0, 100, chunk_size=50)

        assert len(events) == len(busy_chain.logs)
