"""
Negative cycle detection.

Runs Bellman-Ford over a RateGraph. A negative cycle in the log-weighted
graph is a loop of trades whose rate product exceeds 1.
"""

import logging
import math

from dexarb.core.types import ArbitrageCycle, AssetVenue, GraphEdge
from dexarb.strategy.graph import RateGraph
from dexarb.utils.math import EPSILON


logger = logging.getLogger(__name__)


class CycleDetector:
    """
    Finds one reachable negative cycle, if any.

    This is a detector, not an optimizer: when several profitable loops
    exist, the one behind the first edge that still relaxes after N-1
    rounds is returned.
    """

    __slots__ = ("_tolerance",)

    def __init__(self, tolerance: float = EPSILON) -> None:
        """
        Initialize detector.

        Args:
            tolerance: Improvement an edge must offer to count as relaxing.
                Keeps loops with an exact product of 1 from being reported
                because of rounding.
        """
        if tolerance < 0:
            raise ValueError(f"tolerance must be non-negative, got {tolerance}")
        self._tolerance = tolerance

    def find_arbitrage(
        self,
        graph: RateGraph,
        root: AssetVenue | None = None,
    ) -> ArbitrageCycle | None:
        """
        Search the graph for a profitable loop.

        Args:
            graph: Rate graph to search.
            root: Source node (default: first node of the graph). Only
                cycles reachable from it can be found.

        Returns:
            The detected cycle, or None if there is none.
        """
        nodes = graph.nodes
        if not nodes:
            return None

        if root is None:
            root = nodes[0]
        elif not graph.has_node(root):
            raise ValueError(f"Root {root} is not in the graph")

        edges = list(graph.edges())
        n = len(nodes)

        dist: dict[AssetVenue, float] = dict.fromkeys(nodes, math.inf)
        pred: dict[AssetVenue, GraphEdge | None] = dict.fromkeys(nodes)
        dist[root] = 0.0

        for _ in range(n - 1):
            if not self._relax_all(edges, dist, pred):
                break

        for edge in edges:
            if self._relaxes(edge, dist):
                pred[edge.target] = edge
                cycle = self._extract_cycle(edge.target, pred, n)
                if cycle is not None:
                    logger.debug(f"Negative cycle via {edge!r}: {cycle.path_id}")
                    return cycle

        return None

    def _relaxes(self, edge: GraphEdge, dist: dict[AssetVenue, float]) -> bool:
        """Unreachable sources (infinite distance) never relax."""
        source_dist = dist[edge.source]
        if source_dist == math.inf:
            return False
        return source_dist + edge.weight < dist[edge.target] - self._tolerance

    def _relax_all(
        self,
        edges: list[GraphEdge],
        dist: dict[AssetVenue, float],
        pred: dict[AssetVenue, GraphEdge | None],
    ) -> bool:
        """One Bellman-Ford round. Returns True if anything changed."""
        updated = False
        for edge in edges:
            if self._relaxes(edge, dist):
                dist[edge.target] = dist[edge.source] + edge.weight
                pred[edge.target] = edge
                updated = True
        return updated

    def _extract_cycle(
        self,
        start: AssetVenue,
        pred: dict[AssetVenue, GraphEdge | None],
        n: int,
    ) -> ArbitrageCycle | None:
        """
        Recover the loop behind a relaxing edge.

        Walking N predecessor steps from ``start`` is guaranteed to land on
        the cycle; tracing from there until the node repeats yields it.
        """
        node = start
        for _ in range(n):
            edge = pred[node]
            if edge is None:
                logger.warning(f"Predecessor chain from {start} ended at {node}")
                return None
            node = edge.source

        anchor = node
        hops: list[GraphEdge] = []
        current = anchor
        for _ in range(n):
            edge = pred[current]
            if edge is None:
                logger.warning(f"Predecessor chain broke at {current}")
                return None
            hops.append(edge)
            current = edge.source
            if current == anchor:
                break
        else:
            logger.warning(f"No loop through {anchor} within {n} steps")
            return None

        hops.reverse()
        cycle = ArbitrageCycle(
            nodes=(hops[0].source, *(hop.target for hop in hops)),
            hops=tuple(hops),
        )

        if cycle.total_weight >= 0:
            logger.warning(f"Discarding non-negative cycle {cycle.path_id}")
            return None
        return cycle

    @property
    def tolerance(self) -> float:
        return self._tolerance
