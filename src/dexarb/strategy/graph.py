"""
Rate graph construction.

Turns the pair roster plus the latest known rates into a directed graph
over (asset, venue) nodes, using NetworkX as the graph container. Edge
weights are negative log rates so profitable loops become negative cycles.
"""

import logging
import math
from collections.abc import Iterator, Sequence
from typing import Protocol

import networkx as nx

from dexarb.core.types import (
    AssetVenue,
    EdgeKind,
    GraphEdge,
    PairIdentity,
    RateObservation,
)
from dexarb.utils.math import is_usable_rate, rate_to_weight


logger = logging.getLogger(__name__)


# =============================================================================
# Bridge Cost Policies
# =============================================================================


class BridgeCostPolicy(Protocol):
    """Cost of treating ``asset`` on one venue as the same asset on another."""

    def cost(self, asset: str, from_venue: str, to_venue: str) -> float:
        ...


class ConstantBridgeCost:
    """Same bridge cost for every asset and venue pair."""

    __slots__ = ("_cost",)

    def __init__(self, cost: float = 0.0) -> None:
        self._cost = cost

    def cost(self, asset: str, from_venue: str, to_venue: str) -> float:
        return self._cost


class ZeroBridgeCost(ConstantBridgeCost):
    """Assets are freely fungible across venues."""

    def __init__(self) -> None:
        super().__init__(0.0)


# =============================================================================
# Graph
# =============================================================================


def _to_edge(source: AssetVenue, target: AssetVenue, data: dict[str, object]) -> GraphEdge:
    return GraphEdge(
        source=source,
        target=target,
        weight=data["weight"],  # type: ignore[arg-type]
        rate=data["rate"],  # type: ignore[arg-type]
        kind=data["kind"],  # type: ignore[arg-type]
        address=data["address"],  # type: ignore[arg-type]
        fee_rate=data.get("fee_rate", 0.0),  # type: ignore[arg-type]
    )


class RateGraph:
    """
    Read-only view over a built rate graph.

    Nodes and edges iterate in insertion order, which fixes the scan
    order used by the cycle detector.
    """

    __slots__ = ("_graph",)

    def __init__(self, graph: nx.DiGraph | None = None) -> None:
        self._graph: nx.DiGraph = graph if graph is not None else nx.DiGraph()

    @property
    def nodes(self) -> list[AssetVenue]:
        """All nodes in insertion order."""
        return list(self._graph.nodes)

    def edges(self) -> Iterator[GraphEdge]:
        """All edges in insertion order."""
        for source, target, data in self._graph.edges(data=True):
            yield _to_edge(source, target, data)

    def edge(self, source: AssetVenue, target: AssetVenue) -> GraphEdge | None:
        """Edge between two nodes, if present."""
        data = self._graph.get_edge_data(source, target)
        if data is None:
            return None
        return _to_edge(source, target, data)

    def weight(self, source: AssetVenue, target: AssetVenue) -> float | None:
        """Weight of an edge, if present."""
        data = self._graph.get_edge_data(source, target)
        return None if data is None else data["weight"]

    def has_node(self, node: AssetVenue) -> bool:
        return self._graph.has_node(node)

    def has_edge(self, source: AssetVenue, target: AssetVenue) -> bool:
        return self._graph.has_edge(source, target)

    @property
    def node_count(self) -> int:
        return int(self._graph.number_of_nodes())

    @property
    def edge_count(self) -> int:
        return int(self._graph.number_of_edges())

    @property
    def graph(self) -> nx.DiGraph:
        """Get the underlying NetworkX graph."""
        return self._graph

    def to_dict(self) -> dict[str, list[dict[str, object]]]:
        """Serializable form, mainly for logging and debugging."""
        return {
            "nodes": [{"asset": n.asset, "venue": n.venue} for n in self.nodes],
            "edges": [
                {
                    "from": str(e.source),
                    "to": str(e.target),
                    "rate": e.rate,
                    "weight": e.weight,
                    "kind": e.kind.value,
                }
                for e in self.edges()
            ],
        }


# =============================================================================
# Builder
# =============================================================================


def find_latest(
    history: Sequence[RateObservation],
    identity: PairIdentity,
) -> RateObservation | None:
    """
    Find the most recent observation for a pair.

    Scans newest to oldest; either orientation of the asset pair matches.
    """
    for observation in reversed(history):
        if observation.covers(identity):
            return observation
    return None


class RateGraphBuilder:
    """
    Builds a RateGraph from a roster and a history snapshot.

    Pure: no I/O and no mutation of its inputs, so the same snapshot
    always yields the same graph.
    """

    __slots__ = ("_fee_rate", "_bridge_cost")

    def __init__(
        self,
        fee_rate: float = 0.0,
        bridge_cost: BridgeCostPolicy | None = None,
    ) -> None:
        """
        Initialize builder.

        Args:
            fee_rate: Fee deducted from every pair hop on top of the quote.
            bridge_cost: Policy pricing cross-venue moves (default free).
        """
        if not 0.0 <= fee_rate < 1.0:
            raise ValueError(f"fee_rate must be in [0, 1), got {fee_rate}")
        self._fee_rate = fee_rate
        self._bridge_cost: BridgeCostPolicy = bridge_cost or ZeroBridgeCost()

    def build(
        self,
        roster: Sequence[PairIdentity],
        history: Sequence[RateObservation],
    ) -> RateGraph:
        """
        Build the rate graph.

        Args:
            roster: Monitored pairs.
            history: Observations in append order.

        Returns:
            Freshly built RateGraph.
        """
        graph = nx.DiGraph()

        for identity in roster:
            observation = find_latest(history, identity)
            if observation is None:
                logger.debug(f"No rate yet for {identity}")
                continue

            source = AssetVenue(identity.asset1, identity.venue)
            target = AssetVenue(identity.asset2, identity.venue)

            forward = observation.rate_for(identity.asset1, identity.asset2)
            backward = observation.rate_for(identity.asset2, identity.asset1)

            self._add_pair_edge(graph, source, target, forward, identity)
            self._add_pair_edge(graph, target, source, backward, identity)

        self._add_bridges(graph)

        logger.debug(
            f"Built rate graph with {graph.number_of_nodes()} nodes, "
            f"{graph.number_of_edges()} edges"
        )
        return RateGraph(graph)

    def _add_pair_edge(
        self,
        graph: nx.DiGraph,
        source: AssetVenue,
        target: AssetVenue,
        rate: float | None,
        identity: PairIdentity,
    ) -> None:
        """Add one directed pair edge, skipping unusable rates."""
        if rate is None or not is_usable_rate(rate):
            logger.warning(f"Skipping {source}->{target} on {identity.address}: invalid rate {rate}")
            return

        try:
            weight = rate_to_weight(rate, self._fee_rate)
        except ValueError as e:
            logger.warning(f"Skipping {source}->{target} on {identity.address}: {e}")
            return

        graph.add_edge(
            source,
            target,
            weight=weight,
            rate=rate,
            kind=EdgeKind.PAIR,
            address=identity.address,
            fee_rate=self._fee_rate,
        )

    def _add_bridges(self, graph: nx.DiGraph) -> None:
        """Connect every two venues that list the same asset."""
        by_asset: dict[str, list[AssetVenue]] = {}
        for node in graph.nodes:
            by_asset.setdefault(node.asset, []).append(node)

        for asset, nodes in by_asset.items():
            for i, first in enumerate(nodes):
                for second in nodes[i + 1 :]:
                    if first.venue == second.venue:
                        continue
                    self._add_bridge_edge(graph, asset, first, second)
                    self._add_bridge_edge(graph, asset, second, first)

    def _add_bridge_edge(
        self,
        graph: nx.DiGraph,
        asset: str,
        source: AssetVenue,
        target: AssetVenue,
    ) -> None:
        cost = self._bridge_cost.cost(asset, source.venue, target.venue)
        if not math.isfinite(cost):
            logger.warning(f"Skipping bridge {source}->{target}: non-finite cost {cost}")
            return

        graph.add_edge(
            source,
            target,
            weight=cost,
            rate=math.exp(-cost),
            kind=EdgeKind.BRIDGE,
            address="",
        )

    @property
    def fee_rate(self) -> float:
        """Get fee rate per pair hop."""
        return self._fee_rate
