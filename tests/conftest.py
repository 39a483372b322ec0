"""
Pytest configuration and shared fixtures.

Provides reusable pairs, observations and analysis components.
"""

import pytest

from dexarb.core.types import PairIdentity, RateObservation
from dexarb.strategy.detector import CycleDetector
from dexarb.strategy.graph import RateGraphBuilder
from tests.mocks.pair import MockPair


# =============================================================================
# Pair Fixtures
# =============================================================================


@pytest.fixture
def eth_usdt() -> MockPair:
    """ETH/USDT pair; USDT uses 6 decimals."""
    return MockPair("ETH", "USDT", decimals2=6)


@pytest.fixture
def usdt_dai() -> MockPair:
    """USDT/DAI pair."""
    return MockPair("USDT", "DAI", decimals1=6)


@pytest.fixture
def dai_eth() -> MockPair:
    """DAI/ETH pair."""
    return MockPair("DAI", "ETH")


@pytest.fixture
def triangle_pairs(eth_usdt: MockPair, usdt_dai: MockPair, dai_eth: MockPair) -> list[MockPair]:
    """Three pairs on one venue forming ETH -> USDT -> DAI -> ETH."""
    return [eth_usdt, usdt_dai, dai_eth]


@pytest.fixture
def triangle_roster(triangle_pairs: list[MockPair]) -> list[PairIdentity]:
    """Identities of the triangle pairs."""
    return [pair.identity() for pair in triangle_pairs]


# =============================================================================
# History Fixtures
# =============================================================================


@pytest.fixture
def profitable_history(triangle_pairs: list[MockPair]) -> tuple[RateObservation, ...]:
    """Loop value 2000 * 1.001 / 1995, about 1.0035."""
    eth_usdt, usdt_dai, dai_eth = triangle_pairs
    return (
        eth_usdt.observe(2000.0),
        usdt_dai.observe(1.001),
        dai_eth.observe(1 / 1995),
    )


@pytest.fixture
def balanced_history(triangle_pairs: list[MockPair]) -> tuple[RateObservation, ...]:
    """Same triangle with the DAI/ETH rate leaving no spread."""
    eth_usdt, usdt_dai, dai_eth = triangle_pairs
    return (
        eth_usdt.observe(2000.0),
        usdt_dai.observe(1.001),
        dai_eth.observe(1 / 2002),
    )


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def builder() -> RateGraphBuilder:
    """Graph builder with no extra fee and free bridges."""
    return RateGraphBuilder()


@pytest.fixture
def detector() -> CycleDetector:
    """Cycle detector with default tolerance."""
    return CycleDetector()

