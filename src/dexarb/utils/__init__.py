"""Utility functions for the arbitrage engine."""

from dexarb.utils.math import (
    EPSILON,
    format_profit,
    is_usable_rate,
    rate_to_weight,
    scale_amount,
    unscale_amount,
    weight_to_rate,
)
from dexarb.utils.time import (
    LatencyTimer,
    format_duration_us,
    get_timestamp_us,
)


__all__ = [
    "EPSILON",
    "LatencyTimer",
    "format_duration_us",
    "format_profit",
    "get_timestamp_us",
    "is_usable_rate",
    "rate_to_weight",
    "scale_amount",
    "unscale_amount",
    "weight_to_rate",
]
