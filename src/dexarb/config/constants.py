"""
Engine constants and configuration values.

This module contains all hardcoded values used throughout the arbitrage engine.
Values are organized by category for easy maintenance and auditing.
"""

from typing import Final


# =============================================================================
# Node Endpoints
# =============================================================================

DEFAULT_NODE_URL: Final[str] = "ws://127.0.0.1:8546"


# =============================================================================
# Uniswap V2 Trading
# =============================================================================

DEFAULT_SWAP_GAS: Final[int] = 250_000
DEFAULT_TRANSFER_GAS: Final[int] = 80_000

# Receipt polling while waiting for a trade to be mined
RECEIPT_POLL_INTERVAL: Final[float] = 1.0  # seconds
RECEIPT_TIMEOUT: Final[float] = 120.0  # seconds


# =============================================================================
# Trading Fees
# =============================================================================

# Uniswap V2 swap fee (0.3%), expressed per thousand as in the pair contract
DEFAULT_FEE_PER_THOUSAND: Final[int] = 3

# Additional per-hop fee applied by the graph builder (venue quotes are net)
DEFAULT_FEE_RATE: Final[float] = 0.0

# Cost of treating the same asset at two venues as interchangeable
DEFAULT_BRIDGE_COST: Final[float] = 0.0


# =============================================================================
# Cycle Detection
# =============================================================================

# Minimum negative weight a cycle must reach to be reported
DEFAULT_CYCLE_TOLERANCE: Final[float] = 1e-10


# =============================================================================
# Execution
# =============================================================================

# Units of the cycle's starting asset put through each dispatched loop
DEFAULT_TRADE_AMOUNT: Final[float] = 1.0

DEFAULT_DECIMALS: Final[int] = 18


# =============================================================================
# Reconnection Strategy
# =============================================================================

MIN_RECONNECT_DELAY: Final[float] = 1.0  # seconds
MAX_RECONNECT_DELAY: Final[float] = 30.0  # seconds
RECONNECT_MULTIPLIER: Final[float] = 2.0

WS_HEARTBEAT: Final[float] = 20.0  # seconds
WS_MAX_MESSAGE_SIZE: Final[int] = 10 * 1024 * 1024  # 10MB
RPC_REQUEST_TIMEOUT: Final[float] = 10.0  # seconds


# =============================================================================
# Logging & Telemetry
# =============================================================================

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Finished pass outcomes the scheduler keeps for inspection
MAX_PASS_OUTCOMES: Final[int] = 1000

# Status report interval (seconds)
METRICS_REPORT_INTERVAL: Final[float] = 5.0

# Maximum log queue size
MAX_LOG_QUEUE_SIZE: Final[int] = 10_000
