"""Market module for swap monitoring."""

from dexarb.market.monitor import MarketMonitor, MonitorState


__all__ = [
    "MarketMonitor",
    "MonitorState",
]
