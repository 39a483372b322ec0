"""Strategy module for rate graph construction and cycle detection."""

from dexarb.strategy.detector import CycleDetector
from dexarb.strategy.graph import (
    BridgeCostPolicy,
    ConstantBridgeCost,
    RateGraph,
    RateGraphBuilder,
    ZeroBridgeCost,
)


__all__ = [
    "BridgeCostPolicy",
    "ConstantBridgeCost",
    "CycleDetector",
    "RateGraph",
    "RateGraphBuilder",
    "ZeroBridgeCost",
]
