"""Configuration module for the arbitrage engine."""

from dexarb.config.constants import (
    DEFAULT_BRIDGE_COST,
    DEFAULT_FEE_PER_THOUSAND,
    DEFAULT_FEE_RATE,
    MAX_RECONNECT_DELAY,
    MIN_RECONNECT_DELAY,
)
from dexarb.config.settings import PairConfig, Settings, get_settings


__all__ = [
    "PairConfig",
    "Settings",
    "get_settings",
    "DEFAULT_BRIDGE_COST",
    "DEFAULT_FEE_PER_THOUSAND",
    "DEFAULT_FEE_RATE",
    "MIN_RECONNECT_DELAY",
    "MAX_RECONNECT_DELAY",
]
