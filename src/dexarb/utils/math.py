"""
Numeric helpers for rate and amount handling.

Rates travel through the engine as floats; amounts sent on-chain are
integers in the token's smallest unit.
"""

import math
from decimal import ROUND_DOWN, Decimal
from typing import Final


# Epsilon for floating point comparisons
EPSILON: Final[float] = 1e-10


def is_usable_rate(rate: float) -> bool:
    """
    Check whether a rate can be turned into a finite edge weight.

    Zero, negative, NaN and infinite rates are all rejected.
    """
    return math.isfinite(rate) and rate > 0.0


def rate_to_weight(rate: float, fee_rate: float = 0.0) -> float:
    """
    Convert an exchange rate to a log-space edge weight.

    Args:
        rate: Units of the target asset received per unit of the source.
        fee_rate: Fraction of the output lost to fees.

    Returns:
        ``-ln(rate * (1 - fee_rate))``. Multiplying rates along a path
        becomes adding weights, so a loop worth more than 1 has negative
        total weight.

    Raises:
        ValueError: If the fee-adjusted rate is not usable.
    """
    effective = rate * (1.0 - fee_rate)
    if not is_usable_rate(effective):
        raise ValueError(f"Cannot take the logarithm of rate {effective}")
    return -math.log(effective)


def weight_to_rate(weight: float) -> float:
    """Inverse of :func:`rate_to_weight` without fees."""
    return math.exp(-weight)


def scale_amount(amount: float, decimals: int) -> int:
    """
    Scale a human-readable amount to integer base units.

    Rounds down so a trade never asks for more than was received.

    Example:
        >>> scale_amount(1.5, 6)
        1500000
    """
    if amount < 0:
        raise ValueError(f"Amount must be non-negative, got {amount}")
    scaled = Decimal(repr(amount)) * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def unscale_amount(raw: int, decimals: int) -> float:
    """Convert integer base units back to a human-readable amount."""
    return raw / (10 ** decimals)


def format_profit(profit_pct: float) -> str:
    """
    Format profit percentage for display.

    Args:
        profit_pct: Profit as percentage.

    Returns:
        Formatted string with explicit sign.
    """
    sign = "+" if profit_pct >= 0 else ""
    return f"{sign}{profit_pct:.4f}%"
