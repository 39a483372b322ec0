"""
Unit tests for CycleDetector.

Tests negative cycle detection and cycle extraction.
"""

import math

import networkx as nx
import pytest

from dexarb.core.types import AssetVenue, EdgeKind, PairIdentity, RateObservation
from dexarb.strategy.detector import CycleDetector
from dexarb.strategy.graph import RateGraph, RateGraphBuilder
from tests.mocks.pair import MockPair


def _rotate_to(nodes: tuple[AssetVenue, ...], start: AssetVenue) -> list[AssetVenue]:
    """Loop nodes (without the closing repeat) rotated to begin at ``start``."""
    loop = list(nodes[:-1])
    i = loop.index(start)
    return loop[i:] + loop[:i]


def _graph(edges: list[tuple[str, str, float]], venue: str = "V") -> RateGraph:
    """Graph from (from, to, rate) triples on one venue."""
    g = nx.DiGraph()
    for source, target, rate in edges:
        g.add_edge(
            AssetVenue(source, venue),
            AssetVenue(target, venue),
            weight=-math.log(rate),
            rate=rate,
            kind=EdgeKind.PAIR,
            address=f"{source}-{target}",
        )
    return RateGraph(g)


class TestCycleDetector:
    """Tests for CycleDetector."""

    def test_empty_graph(self, detector: CycleDetector) -> None:
        assert detector.find_arbitrage(RateGraph()) is None

    def test_no_cycle(self, detector: CycleDetector) -> None:
        """Reciprocal rates everywhere leave nothing to find."""
        graph = _graph([
            ("A", "B", 2.0),
            ("B", "A", 0.5),
            ("B", "C", 4.0),
            ("C", "B", 0.25),
        ])

        assert detector.find_arbitrage(graph) is None

    def test_planted_cycle(self, detector: CycleDetector) -> None:
        graph = _graph([
            ("A", "B", 1.0),
            ("B", "C", 1.0),
            ("C", "A", 1.1),
            ("B", "A", 0.9),
        ])

        cycle = detector.find_arbitrage(graph)

        assert cycle is not None
        assert cycle.nodes[0] == cycle.nodes[-1]
        assert cycle.total_weight < 0
        assert len(cycle.hops) == len(cycle.nodes) - 1
        assert _rotate_to(cycle.nodes, AssetVenue("A", "V")) == [
            AssetVenue("A", "V"),
            AssetVenue("B", "V"),
            AssetVenue("C", "V"),
        ]
        assert cycle.gross_return == pytest.approx(1.1)

    def test_hops_chain_through_nodes(self, detector: CycleDetector) -> None:
        graph = _graph([("A", "B", 1.2), ("B", "A", 1.0)])

        cycle = detector.find_arbitrage(graph)

        assert cycle is not None
        for i, hop in enumerate(cycle.hops):
            assert hop.source == cycle.nodes[i]
            assert hop.target == cycle.nodes[i + 1]

    def test_scan_continues_after_unrecoverable_loop(self) -> None:
        """A relaxing edge whose loop cannot be traced does not end the search."""

        class FirstTraceFails(CycleDetector):
            def __init__(self) -> None:
                super().__init__()
                self.traces = 0

            def _extract_cycle(self, start, pred, n):  # type: ignore[no-untyped-def]
                self.traces += 1
                if self.traces == 1:
                    return None
                return super()._extract_cycle(start, pred, n)

        detector = FirstTraceFails()
        graph = _graph([
            ("A", "B", 1.2),
            ("A", "C", 1.0),
            ("B", "A", 1.0),
            ("C", "A", 1.2),
        ])

        cycle = detector.find_arbitrage(graph)

        assert cycle is not None
        assert detector.traces >= 2
        assert cycle.total_weight < 0

    def test_unreachable_cycle_not_found(self, detector: CycleDetector) -> None:
        """Only cycles reachable from the root are found."""
        graph = _graph([
            ("A", "B", 1.0),
            ("B", "A", 1.0),
            ("X", "Y", 1.5),
            ("Y", "X", 1.5),
        ])

        assert detector.find_arbitrage(graph) is None
        assert detector.find_arbitrage(graph, root=AssetVenue("X", "V")) is not None

    def test_unknown_root(self, detector: CycleDetector) -> None:
        graph = _graph([("A", "B", 1.0)])

        with pytest.raises(ValueError):
            detector.find_arbitrage(graph, root=AssetVenue("Z", "V"))

    def test_negative_tolerance_rejected(self) -> None:
        with pytest.raises(ValueError):
            CycleDetector(tolerance=-1.0)

    def test_tolerance_suppresses_tiny_cycles(self) -> None:
        graph = _graph([("A", "B", 1.0 + 1e-12), ("B", "A", 1.0)])

        assert CycleDetector().find_arbitrage(graph) is None
        assert CycleDetector(tolerance=0.0).find_arbitrage(graph) is not None


class TestEndToEnd:
    """Builder plus detector over the ETH/USDT/DAI triangle."""

    def test_profitable_triangle(
        self,
        builder: RateGraphBuilder,
        detector: CycleDetector,
        triangle_roster: list[PairIdentity],
        profitable_history: tuple[RateObservation, ...],
    ) -> None:
        """2000 * 1.001 / 1995 > 1 yields ETH -> USDT -> DAI -> ETH."""
        graph = builder.build(triangle_roster, profitable_history)

        cycle = detector.find_arbitrage(graph)

        assert cycle is not None
        assert len(cycle) == 3
        eth = AssetVenue("ETH", "UniswapV2")
        assert [n.asset for n in _rotate_to(cycle.nodes, eth)] == ["ETH", "USDT", "DAI"]
        assert cycle.gross_return == pytest.approx(2000 * 1.001 / 1995)
        assert cycle.profit_pct == pytest.approx((2000 * 1.001 / 1995 - 1) * 100)

    def test_balanced_triangle(
        self,
        builder: RateGraphBuilder,
        detector: CycleDetector,
        triangle_roster: list[PairIdentity],
        balanced_history: tuple[RateObservation, ...],
    ) -> None:
        """A loop worth exactly 1 is not an opportunity."""
        graph = builder.build(triangle_roster, balanced_history)

        assert detector.find_arbitrage(graph) is None

    def test_cross_venue_cycle_uses_bridges(
        self, builder: RateGraphBuilder, detector: CycleDetector
    ) -> None:
        """A price gap between venues closes through bridge edges."""
        uni = MockPair("ETH", "USDT", venue="UniswapV2")
        sushi = MockPair("ETH", "USDT", venue="SushiSwap")
        roster = [uni.identity(), sushi.identity()]
        history = (uni.observe(2000.0), sushi.observe(2010.0))

        cycle = detector.find_arbitrage(builder.build(roster, history))

        assert cycle is not None
        assert any(hop.is_bridge for hop in cycle.hops)
        assert {n.venue for n in cycle.nodes} == {"UniswapV2", "SushiSwap"}
        assert cycle.gross_return == pytest.approx(2010 / 2000)
