"""Core module containing the scheduler, event bus, and type definitions."""

from dexarb.core.cancellation import CancellationToken
from dexarb.core.errors import DexArbError, PairNotFoundError, PassCancelled
from dexarb.core.event_bus import Event, EventBus, EventType
from dexarb.core.history import EventAggregator, History
from dexarb.core.types import (
    ArbitrageCycle,
    AssetVenue,
    DispatchResult,
    DispatchStatus,
    EdgeKind,
    GraphEdge,
    HopResult,
    HopStatus,
    Pair,
    PairIdentity,
    PassOutcome,
    PassState,
    RateObservation,
)


__all__ = [
    "ArbitrageCycle",
    "AssetVenue",
    "CancellationToken",
    "DexArbError",
    "DispatchResult",
    "DispatchStatus",
    "EdgeKind",
    "Event",
    "EventAggregator",
    "EventBus",
    "EventType",
    "GraphEdge",
    "History",
    "HopResult",
    "HopStatus",
    "Pair",
    "PairIdentity",
    "PairNotFoundError",
    "PassCancelled",
    "PassOutcome",
    "PassState",
    "RateObservation",
]
