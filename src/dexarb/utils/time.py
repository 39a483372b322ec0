"""
Timestamps and latency measurement.

Wall-clock microseconds order observations and stamp events; stage
latencies are taken from the monotonic performance counter.
"""

import time


def get_timestamp_us() -> int:
    """Current Unix time in microseconds."""
    return time.time_ns() // 1000


def get_monotonic_us() -> int:
    """
    Monotonic clock in microseconds.

    Only differences are meaningful; unaffected by wall-clock jumps.
    """
    return time.perf_counter_ns() // 1000


class LatencyTimer:
    """
    Context manager measuring the latency of a block.

    Example:
        >>> with LatencyTimer() as timer:
        ...     builder.build(roster, snapshot)
        >>> timer.latency_us
        412
    """

    __slots__ = ("start_us", "end_us", "latency_us")

    def __init__(self) -> None:
        self.start_us = 0
        self.end_us = 0
        self.latency_us = 0

    def __enter__(self) -> "LatencyTimer":
        self.start_us = get_monotonic_us()
        return self

    def __exit__(self, *args: object) -> None:
        self.end_us = get_monotonic_us()
        self.latency_us = self.end_us - self.start_us


def format_duration_us(duration_us: int) -> str:
    """
    Human-readable duration.

    Examples:
        >>> format_duration_us(500)
        '500μs'
        >>> format_duration_us(1500)
        '1.50ms'
        >>> format_duration_us(1500000)
        '1.50s'
    """
    for scale, unit in ((1_000_000, "s"), (1000, "ms")):
        if abs(duration_us) >= scale:
            return f"{duration_us / scale:.2f}{unit}"
    return f"{duration_us}μs"
