"""
Unit tests for numeric and time helpers.
"""

import math

import pytest

from dexarb.utils.math import (
    format_profit,
    is_usable_rate,
    rate_to_weight,
    scale_amount,
    unscale_amount,
    weight_to_rate,
)
from dexarb.utils.time import LatencyTimer, format_duration_us, get_timestamp_us


class TestRateMath:
    """Tests for rate/weight conversion."""

    @pytest.mark.parametrize("rate", [0.0, -1.0, math.nan, math.inf])
    def test_unusable_rates(self, rate: float) -> None:
        assert not is_usable_rate(rate)
        with pytest.raises(ValueError):
            rate_to_weight(rate)

    def test_weight_is_negative_log(self) -> None:
        assert rate_to_weight(2000.0) == pytest.approx(-math.log(2000.0))
        assert rate_to_weight(1.0) == 0.0

    def test_fee_lowers_rate(self) -> None:
        assert rate_to_weight(1.0, fee_rate=0.01) == pytest.approx(-math.log(0.99))

    def test_weight_round_trip(self) -> None:
        assert weight_to_rate(rate_to_weight(1.0035)) == pytest.approx(1.0035)


class TestAmounts:
    """Tests for base-unit scaling."""

    def test_scale_amount(self) -> None:
        assert scale_amount(1.5, 6) == 1_500_000
        assert scale_amount(2000.0, 18) == 2000 * 10**18

    def test_scale_rounds_down(self) -> None:
        assert scale_amount(0.1234567, 6) == 123_456

    def test_scale_rejects_negative(self) -> None:
        with pytest.raises(ValueError):
            scale_amount(-1.0, 6)

    def test_unscale_amount(self) -> None:
        assert unscale_amount(1_500_000, 6) == 1.5

    def test_format_profit(self) -> None:
        assert format_profit(0.35) == "+0.3500%"
        assert format_profit(-0.1) == "-0.1000%"


class TestTime:
    """Tests for timing helpers."""

    def test_latency_timer(self) -> None:
        with LatencyTimer() as timer:
            sum(range(1000))

        assert timer.latency_us >= 0
        assert timer.end_us >= timer.start_us

    def test_timestamp_is_microseconds(self) -> None:
        # Sanity range: after 2020, before 2100
        assert 1_577_836_800_000_000 < get_timestamp_us() < 4_102_444_800_000_000

    @pytest.mark.parametrize(
        ("duration", "expected"),
        [(500, "500μs"), (1500, "1.50ms"), (1_500_000, "1.50s")],
    )
    def test_format_duration(self, duration: int, expected: str) -> None:
        assert format_duration_us(duration) == expected
