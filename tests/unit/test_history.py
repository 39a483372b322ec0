"""
Unit tests for History and EventAggregator.
"""

import asyncio
import threading

import pytest

from dexarb.core.history import EventAggregator, History
from tests.mocks.pair import MockPair


class TestHistory:
    """Tests for History."""

    def test_append_preserves_order(self, eth_usdt: MockPair, dai_eth: MockPair) -> None:
        history = History()
        first = eth_usdt.observe(2000.0)
        second = dai_eth.observe(1 / 2000)

        history.append(first)
        history.append(second)

        assert len(history) == 2
        assert history.snapshot() == (first, second)
        assert history.latest is second

    def test_snapshot_is_detached(self, eth_usdt: MockPair) -> None:
        """Later appends do not show up in an earlier snapshot."""
        history = History()
        history.append(eth_usdt.observe(2000.0))

        snapshot = history.snapshot()
        history.append(eth_usdt.observe(2001.0))

        assert len(snapshot) == 1
        assert len(history) == 2

    def test_empty(self) -> None:
        history = History()

        assert history.latest is None
        assert history.snapshot() == ()
        assert list(history) == []


class TestEventAggregator:
    """Tests for EventAggregator."""

    @pytest.mark.asyncio
    async def test_fifo(self, eth_usdt: MockPair, usdt_dai: MockPair) -> None:
        aggregator = EventAggregator()
        first = eth_usdt.observe(2000.0)
        second = usdt_dai.observe(1.001)

        aggregator.record(first)
        aggregator.record(second)

        assert aggregator.pending == 2
        assert await aggregator.next() is first
        assert await aggregator.next() is second
        assert aggregator.received == 2
        assert aggregator.next_nowait() is None

    @pytest.mark.asyncio
    async def test_concurrent_producers(self, triangle_pairs: list[MockPair]) -> None:
        """Every observation from every producer arrives exactly once."""
        aggregator = EventAggregator()

        async def produce(pair: MockPair) -> None:
            for i in range(50):
                aggregator.record(pair.observe(1.0 + i))
                await asyncio.sleep(0)

        await asyncio.gather(*(produce(pair) for pair in triangle_pairs))

        drained = []
        while (obs := aggregator.next_nowait()) is not None:
            drained.append(obs)

        assert len(drained) == 150
        assert len({id(obs) for obs in drained}) == 150

    @pytest.mark.asyncio
    async def test_record_threadsafe(self, eth_usdt: MockPair) -> None:
        aggregator = EventAggregator()
        aggregator.bind()
        observation = eth_usdt.observe(2000.0)

        thread = threading.Thread(target=aggregator.record_threadsafe, args=(observation,))
        thread.start()
        thread.join()

        assert await asyncio.wait_for(aggregator.next(), timeout=1.0) is observation

    def test_record_threadsafe_requires_bind(self, eth_usdt: MockPair) -> None:
        aggregator = EventAggregator()

        with pytest.raises(RuntimeError):
            aggregator.record_threadsafe(eth_usdt.observe(2000.0))
