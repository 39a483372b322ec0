"""
Type definitions for the arbitrage engine.

This module contains the dataclasses, enums and Protocol definitions
shared by the graph builder, cycle detector, scheduler and dispatcher.
Value types are frozen and use slots=True.
"""

import math
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol, runtime_checkable

from dexarb.utils.math import weight_to_rate


# =============================================================================
# Enums
# =============================================================================


class EdgeKind(str, Enum):
    """Origin of a rate graph edge."""

    PAIR = "PAIR"
    BRIDGE = "BRIDGE"


class PassState(str, Enum):
    """Lifecycle state of one analysis pass."""

    IDLE = "IDLE"
    BUILDING = "BUILDING"
    SEARCHING = "SEARCHING"
    DISPATCHING = "DISPATCHING"
    CANCELLED = "CANCELLED"


class DispatchStatus(str, Enum):
    """Outcome of dispatching a detected cycle."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    SIMULATED = "SIMULATED"


class HopStatus(Enum):
    """Outcome of a single hop."""

    EXECUTED = auto()
    SKIPPED = auto()
    SIMULATED = auto()
    FAILED = auto()


# =============================================================================
# Market Data Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class AssetVenue:
    """
    Rate graph node: an asset as tradable on one venue.

    Frozen for immutability and hashability.
    """

    asset: str
    venue: str

    def __str__(self) -> str:
        return f"{self.asset}@{self.venue}"


@dataclass(slots=True, frozen=True)
class PairIdentity:
    """
    Static descriptor of a monitored trading pair.

    ``asset1`` is the pool's first token. Decimal precision is carried
    here so amounts can be scaled per asset.
    """

    asset1: str
    asset2: str
    venue: str
    address: str
    decimals1: int = 18
    decimals2: int = 18

    def matches(self, venue: str, asset_a: str, asset_b: str) -> bool:
        """Check venue and unordered asset pair."""
        if venue != self.venue:
            return False
        return {asset_a, asset_b} == {self.asset1, self.asset2}

    def decimals_of(self, asset: str) -> int:
        """Decimal precision of one side of the pair."""
        if asset == self.asset1:
            return self.decimals1
        if asset == self.asset2:
            return self.decimals2
        raise KeyError(f"{asset} is not traded by {self}")

    def __str__(self) -> str:
        return f"{self.venue} {self.asset1}/{self.asset2} ({self.address})"


@dataclass(slots=True, frozen=True)
class RateObservation:
    """
    Exchange rates of one pair right after an on-chain swap.

    ``rate_forward`` is units of ``asset_to`` per unit of ``asset_from``;
    ``rate_backward`` is the reverse direction. ``observed_at`` orders
    observations (sequence number or microsecond timestamp).
    """

    venue: str
    asset_from: str
    asset_to: str
    address: str
    rate_forward: float
    rate_backward: float
    observed_at: int

    def rate_for(self, asset_from: str, asset_to: str) -> float | None:
        """Directional rate, or None if this observation covers another pair."""
        if asset_from == self.asset_from and asset_to == self.asset_to:
            return self.rate_forward
        if asset_from == self.asset_to and asset_to == self.asset_from:
            return self.rate_backward
        return None

    def covers(self, identity: PairIdentity) -> bool:
        """Check whether this observation reports on the given pair."""
        return identity.matches(self.venue, self.asset_from, self.asset_to)


# =============================================================================
# Graph Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class GraphEdge:
    """Directed, weighted rate graph edge."""

    source: AssetVenue
    target: AssetVenue
    weight: float
    rate: float
    kind: EdgeKind = EdgeKind.PAIR
    address: str = ""
    fee_rate: float = 0.0

    @property
    def is_bridge(self) -> bool:
        """Bridge edges move an asset between venues without trading."""
        return self.kind == EdgeKind.BRIDGE

    @property
    def effective_rate(self) -> float:
        """Output per unit of input after the builder's per-hop fee."""
        return self.rate * (1.0 - self.fee_rate)

    def __repr__(self) -> str:
        return f"{self.source}->{self.target}({self.kind.value}:{self.rate:.8g})"


@dataclass(slots=True)
class ArbitrageCycle:
    """
    Detected profitable loop.

    ``nodes`` starts and ends on the same AssetVenue; ``hops[i]`` is the
    edge from ``nodes[i]`` to ``nodes[i + 1]``.
    """

    nodes: tuple[AssetVenue, ...]
    hops: tuple[GraphEdge, ...]
    total_weight: float = field(init=False)

    def __post_init__(self) -> None:
        """Validate the loop and compute derived fields."""
        if len(self.nodes) < 2 or self.nodes[0] != self.nodes[-1]:
            raise ValueError("Cycle must start and end on the same node")
        if len(self.hops) != len(self.nodes) - 1:
            raise ValueError("Cycle needs exactly one hop per consecutive node pair")
        self.total_weight = math.fsum(hop.weight for hop in self.hops)

    @property
    def start(self) -> AssetVenue:
        """Node the loop starts and ends on."""
        return self.nodes[0]

    @property
    def gross_return(self) -> float:
        """Units of the start asset received per unit sent around the loop."""
        return weight_to_rate(self.total_weight)

    @property
    def profit_pct(self) -> float:
        """Loop profit as percentage."""
        return (self.gross_return - 1.0) * 100.0

    @property
    def trade_count(self) -> int:
        """Number of hops that require an actual trade."""
        return sum(1 for hop in self.hops if not hop.is_bridge)

    @property
    def path_id(self) -> str:
        """Readable identifier, e.g. ``ETH@UniswapV2 -> USDT@UniswapV2 -> ...``."""
        return " -> ".join(str(node) for node in self.nodes)

    def __len__(self) -> int:
        return len(self.hops)


# =============================================================================
# Execution Types
# =============================================================================


@dataclass(slots=True)
class HopResult:
    """Result of executing a single hop."""

    hop: GraphEdge
    status: HopStatus
    amount_in: float = 0.0
    amount_out: float = 0.0
    raw_amounts: tuple[int, int] = (0, 0)
    error_message: str = ""

    @property
    def is_ok(self) -> bool:
        """Check whether the hop did not fail."""
        return self.status != HopStatus.FAILED


@dataclass(slots=True)
class DispatchResult:
    """Result of dispatching a complete cycle."""

    cycle: ArbitrageCycle
    status: DispatchStatus
    hops: tuple[HopResult, ...] = ()
    failed_hop: int | None = None
    error_message: str = ""
    start_timestamp_us: int = 0
    end_timestamp_us: int = 0

    @property
    def total_latency_us(self) -> int:
        """Calculate total dispatch latency."""
        return self.end_timestamp_us - self.start_timestamp_us

    @property
    def is_success(self) -> bool:
        """Check if every hop went through (or was simulated)."""
        return self.status in (DispatchStatus.SUCCESS, DispatchStatus.SIMULATED)


@dataclass(slots=True)
class PassOutcome:
    """Terminal report of one analysis pass."""

    pass_id: int
    state: PassState
    history_size: int
    cycle: ArbitrageCycle | None = None
    dispatch: DispatchResult | None = None
    build_latency_us: int = 0
    search_latency_us: int = 0

    @property
    def found(self) -> bool:
        """Check whether the pass detected a cycle."""
        return self.cycle is not None


# =============================================================================
# Protocols (Interfaces)
# =============================================================================


@runtime_checkable
class Pair(Protocol):
    """
    Capability set of a monitored trading pair.

    Venue-specific behavior (fee, decimal scaling) lives in the
    implementing object, not in subclassing.
    """

    def identity(self) -> PairIdentity:
        """Static pair descriptor."""
        ...

    def monitor(self) -> AsyncIterator[RateObservation]:
        """Yield one observation per on-chain swap until cancelled."""
        ...

    async def execute_swap(self, amount_in1: int, amount_in2: int) -> bool:
        """Issue exactly one trade; True on success."""
        ...
