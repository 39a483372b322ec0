"""
Metrics collection for performance monitoring.

Counts observations and pass outcomes and keeps rolling latency windows
for the build and search stages. Fed entirely by event bus subscriptions.
"""

import time
from collections import deque
from dataclasses import dataclass
from typing import Any

from dexarb.core.event_bus import Event, EventBus, EventType
from dexarb.core.types import PassOutcome


COUNTERS = (
    "observations",
    "passes_started",
    "passes_cancelled",
    "cycles_found",
    "no_arbitrage",
    "dispatch_success",
    "dispatch_failed",
)


@dataclass
class LatencyStats:
    """Aggregated latency statistics."""

    min_us: int = 0
    max_us: int = 0
    avg_us: float = 0.0
    p50_us: int = 0
    p95_us: int = 0
    p99_us: int = 0
    count: int = 0


class MetricsCollector:
    """
    Collects and aggregates engine metrics.

    Features:
    - Rolling window latency tracking (build, search, pass)
    - Counters for every pass outcome
    - Best cycle return seen
    """

    def __init__(self, latency_window_size: int = 1000) -> None:
        """
        Initialize metrics collector.

        Args:
            latency_window_size: Number of samples to keep per latency metric.
        """
        self._window_size = latency_window_size
        self._latencies: dict[str, deque[int]] = {}
        self._counters: dict[str, int] = dict.fromkeys(COUNTERS, 0)
        self._pass_started_at: dict[int, int] = {}
        self._best_profit_pct = 0.0
        self._last_cycle: str = ""
        self._start_time = time.time()

    # =========================================================================
    # Event Bus Wiring
    # =========================================================================

    def attach(self, event_bus: EventBus) -> None:
        """Subscribe to every event the collector counts."""
        event_bus.subscribe_sync(EventType.RATE_OBSERVED, self._on_observation)
        event_bus.subscribe_sync(EventType.PASS_STARTED, self._on_pass_started)
        event_bus.subscribe_sync(EventType.PASS_CANCELLED, self._on_pass_cancelled)
        event_bus.subscribe_sync(EventType.ARBITRAGE_FOUND, self._on_arbitrage_found)
        event_bus.subscribe_sync(EventType.NO_ARBITRAGE, self._on_no_arbitrage)
        event_bus.subscribe_sync(EventType.DISPATCH_COMPLETE, self._on_dispatch_complete)
        event_bus.subscribe_sync(EventType.DISPATCH_FAILED, self._on_dispatch_failed)

    def _on_observation(self, event: Event[Any]) -> None:
        self.increment_counter("observations")

    def _on_pass_started(self, event: Event[Any]) -> None:
        self.increment_counter("passes_started")
        self._pass_started_at[event.payload.pass_id] = event.timestamp_us

    def _on_pass_cancelled(self, event: Event[PassOutcome]) -> None:
        self.increment_counter("passes_cancelled")
        self._finish_pass(event)

    def _on_arbitrage_found(self, event: Event[PassOutcome]) -> None:
        outcome = event.payload
        self.increment_counter("cycles_found")
        self._record_stage_latencies(outcome)
        if outcome.cycle is not None:
            self._last_cycle = outcome.cycle.path_id
            self._best_profit_pct = max(self._best_profit_pct, outcome.cycle.profit_pct)

    def _on_no_arbitrage(self, event: Event[PassOutcome]) -> None:
        self.increment_counter("no_arbitrage")
        self._record_stage_latencies(event.payload)
        self._finish_pass(event)

    def _on_dispatch_complete(self, event: Event[PassOutcome]) -> None:
        self.increment_counter("dispatch_success")
        self._finish_pass(event)

    def _on_dispatch_failed(self, event: Event[PassOutcome]) -> None:
        self.increment_counter("dispatch_failed")
        self._finish_pass(event)

    def _record_stage_latencies(self, outcome: PassOutcome) -> None:
        self.record_latency("build", outcome.build_latency_us)
        self.record_latency("search", outcome.search_latency_us)

    def _finish_pass(self, event: Event[PassOutcome]) -> None:
        started = self._pass_started_at.pop(event.payload.pass_id, None)
        if started is not None:
            self.record_latency("pass", max(0, event.timestamp_us - started))

    # =========================================================================
    # Recording
    # =========================================================================

    def record_latency(self, name: str, latency_us: int) -> None:
        """
        Record a latency measurement.

        Args:
            name: Metric name (e.g., "build", "search").
            latency_us: Latency in microseconds.
        """
        if name not in self._latencies:
            self._latencies[name] = deque(maxlen=self._window_size)
        self._latencies[name].append(latency_us)

    def increment_counter(self, name: str, value: int = 1) -> None:
        self._counters[name] = self._counters.get(name, 0) + value

    def get_counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    # =========================================================================
    # Reporting
    # =========================================================================

    def get_latency_stats(self, name: str) -> LatencyStats:
        """
        Get latency statistics for a metric.

        Returns:
            LatencyStats with aggregated values, zeroed if no samples.
        """
        samples = self._latencies.get(name)
        if not samples:
            return LatencyStats()

        sorted_samples = sorted(samples)
        n = len(sorted_samples)

        return LatencyStats(
            min_us=sorted_samples[0],
            max_us=sorted_samples[-1],
            avg_us=sum(sorted_samples) / n,
            p50_us=sorted_samples[n // 2],
            p95_us=sorted_samples[int(n * 0.95)],
            p99_us=sorted_samples[int(n * 0.99)] if n > 1 else sorted_samples[-1],
            count=n,
        )

    def get_all_latency_stats(self) -> dict[str, LatencyStats]:
        return {name: self.get_latency_stats(name) for name in self._latencies}

    @property
    def counters(self) -> dict[str, int]:
        return dict(self._counters)

    @property
    def best_profit_pct(self) -> float:
        """Largest cycle return seen, in percent."""
        return self._best_profit_pct

    @property
    def last_cycle(self) -> str:
        return self._last_cycle

    @property
    def uptime_seconds(self) -> float:
        return time.time() - self._start_time

    def to_dict(self) -> dict[str, object]:
        """Export all metrics as a dict."""
        return {
            "uptime_seconds": self.uptime_seconds,
            "counters": dict(self._counters),
            "best_profit_pct": self._best_profit_pct,
            "latencies": {
                name: {
                    "min": stats.min_us,
                    "max": stats.max_us,
                    "avg": stats.avg_us,
                    "p50": stats.p50_us,
                    "p99": stats.p99_us,
                    "count": stats.count,
                }
                for name, stats in self.get_all_latency_stats().items()
            },
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self._latencies.clear()
        self._counters = dict.fromkeys(COUNTERS, 0)
        self._pass_started_at.clear()
        self._best_profit_pct = 0.0
        self._last_cycle = ""
        self._start_time = time.time()
