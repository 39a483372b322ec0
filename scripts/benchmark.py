#!/usr/bin/env python3
"""
Latency Benchmark Script.

Measures graph build and cycle search latency on synthetic rosters.

Usage:
    python scripts/benchmark.py
"""

import random
import statistics
import sys

from dexarb.core.types import PairIdentity, RateObservation
from dexarb.simulation.market import REFERENCE_PRICES, reference_rate
from dexarb.strategy.detector import CycleDetector
from dexarb.strategy.graph import ConstantBridgeCost, RateGraphBuilder
from dexarb.utils.time import format_duration_us, get_timestamp_us


VENUES = ("UniswapV2", "SushiSwap")


def make_market(
    history_size: int,
    seed: int = 7,
) -> tuple[list[PairIdentity], list[RateObservation]]:
    """Every asset pair on every venue, plus noisy observations for them."""
    rng = random.Random(seed)
    assets = sorted(REFERENCE_PRICES)

    roster = [
        PairIdentity(a, b, venue, f"0x{venue}-{a}-{b}".lower())
        for venue in VENUES
        for i, a in enumerate(assets)
        for b in assets[i + 1 :]
    ]

    history = []
    for n in range(history_size):
        identity = rng.choice(roster)
        rate = reference_rate(identity.asset1, identity.asset2) * (1 + rng.gauss(0, 0.001))
        history.append(
            RateObservation(
                venue=identity.venue,
                asset_from=identity.asset1,
                asset_to=identity.asset2,
                address=identity.address,
                rate_forward=rate * 0.997,
                rate_backward=0.997 / rate,
                observed_at=n,
            )
        )
    return roster, history


def summarize(latencies: list[int]) -> dict[str, float]:
    return {
        "min": min(latencies),
        "max": max(latencies),
        "avg": statistics.mean(latencies),
        "p50": statistics.median(latencies),
        "p99": sorted(latencies)[int(len(latencies) * 0.99)],
    }


def benchmark_build(history_size: int, iterations: int = 1000) -> dict[str, float]:
    """Benchmark rate graph construction."""
    roster, history = make_market(history_size)
    builder = RateGraphBuilder(bridge_cost=ConstantBridgeCost(0.0005))
    latencies: list[int] = []

    for _ in range(iterations):
        start = get_timestamp_us()
        builder.build(roster, history)
        latencies.append(get_timestamp_us() - start)

    return summarize(latencies)


def benchmark_search(history_size: int, iterations: int = 1000) -> dict[str, float]:
    """Benchmark the negative-cycle search on a prebuilt graph."""
    roster, history = make_market(history_size)
    graph = RateGraphBuilder(bridge_cost=ConstantBridgeCost(0.0005)).build(roster, history)
    detector = CycleDetector()
    latencies: list[int] = []

    for _ in range(iterations):
        start = get_timestamp_us()
        detector.find_arbitrage(graph)
        latencies.append(get_timestamp_us() - start)

    return summarize(latencies)


def benchmark_pass(history_size: int, iterations: int = 500) -> dict[str, float]:
    """Benchmark build + search as one analysis pass computes them."""
    roster, history = make_market(history_size)
    builder = RateGraphBuilder(bridge_cost=ConstantBridgeCost(0.0005))
    detector = CycleDetector()
    latencies: list[int] = []

    for _ in range(iterations):
        start = get_timestamp_us()
        detector.find_arbitrage(builder.build(roster, history))
        latencies.append(get_timestamp_us() - start)

    return summarize(latencies)


def format_stats(stats: dict[str, float]) -> str:
    """Format stats for display."""
    return (
        f"min={format_duration_us(int(stats['min']))}, "
        f"avg={format_duration_us(int(stats['avg']))}, "
        f"p50={format_duration_us(int(stats['p50']))}, "
        f"p99={format_duration_us(int(stats['p99']))}, "
        f"max={format_duration_us(int(stats['max']))}"
    )


def main() -> int:
    """Run all benchmarks."""
    print("=" * 70)
    print("  LATENCY BENCHMARK")
    print("=" * 70)
    print()

    print("Warming up...")
    benchmark_pass(100, iterations=50)
    print()

    for history_size in (100, 10_000):
        print(f"History of {history_size:,} observations")
        print(f"   Build:  {format_stats(benchmark_build(history_size))}")
        print(f"   Search: {format_stats(benchmark_search(history_size))}")
        print(f"   Pass:   {format_stats(benchmark_pass(history_size))}")
        print()

    return 0


if __name__ == "__main__":
    sys.exit(main())
