"""
Unit tests for metrics collection and the CLI reporter.
"""

import io

import pytest

from dexarb.core.event_bus import Event, EventBus, EventType
from dexarb.core.types import ArbitrageCycle, PassOutcome, PassState
from dexarb.strategy.detector import CycleDetector
from dexarb.strategy.graph import RateGraphBuilder
from dexarb.telemetry.metrics import MetricsCollector
from dexarb.telemetry.reporter import CLIReporter


class _Started:
    """Stand-in for an AnalysisPass payload."""

    def __init__(self, pass_id: int) -> None:
        self.pass_id = pass_id


def _outcome(pass_id: int, cycle: ArbitrageCycle | None = None) -> PassOutcome:
    return PassOutcome(
        pass_id=pass_id,
        state=PassState.IDLE,
        history_size=3,
        cycle=cycle,
        build_latency_us=120,
        search_latency_us=80,
    )


@pytest.fixture
def bus_and_metrics() -> tuple[EventBus, MetricsCollector]:
    bus = EventBus()
    metrics = MetricsCollector()
    metrics.attach(bus)
    return bus, metrics


@pytest.fixture
def cycle(builder: RateGraphBuilder, detector: CycleDetector, triangle_roster, profitable_history) -> ArbitrageCycle:
    found = detector.find_arbitrage(builder.build(triangle_roster, profitable_history))
    assert found is not None
    return found


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_latency_stats(self) -> None:
        metrics = MetricsCollector()
        for value in range(1, 101):
            metrics.record_latency("build", value)

        stats = metrics.get_latency_stats("build")

        assert stats.count == 100
        assert stats.min_us == 1
        assert stats.max_us == 100
        assert stats.avg_us == pytest.approx(50.5)
        assert stats.p50_us == 51

    def test_latency_window(self) -> None:
        metrics = MetricsCollector(latency_window_size=3)
        for value in (1, 2, 3, 4):
            metrics.record_latency("search", value)

        assert metrics.get_latency_stats("search").min_us == 2

    def test_unknown_latency_is_zeroed(self) -> None:
        assert MetricsCollector().get_latency_stats("missing").count == 0

    def test_counts_pass_lifecycle(self, bus_and_metrics: tuple[EventBus, MetricsCollector]) -> None:
        bus, metrics = bus_and_metrics

        bus.publish_sync(Event(EventType.RATE_OBSERVED, None))
        bus.publish_sync(Event(EventType.PASS_STARTED, _Started(1), timestamp_us=1_000))
        bus.publish_sync(Event(EventType.PASS_STARTED, _Started(2), timestamp_us=1_100))
        bus.publish_sync(Event(EventType.PASS_CANCELLED, _outcome(1), timestamp_us=1_500))
        bus.publish_sync(Event(EventType.NO_ARBITRAGE, _outcome(2), timestamp_us=2_100))

        counters = metrics.counters
        assert counters["observations"] == 1
        assert counters["passes_started"] == 2
        assert counters["passes_cancelled"] == 1
        assert counters["no_arbitrage"] == 1

        passes = metrics.get_latency_stats("pass")
        assert passes.count == 2
        assert passes.min_us == 500
        assert passes.max_us == 1_000
        assert metrics.get_latency_stats("build").avg_us == 120

    def test_tracks_best_cycle(
        self, bus_and_metrics: tuple[EventBus, MetricsCollector], cycle: ArbitrageCycle
    ) -> None:
        bus, metrics = bus_and_metrics

        bus.publish_sync(Event(EventType.PASS_STARTED, _Started(1), timestamp_us=10))
        bus.publish_sync(Event(EventType.ARBITRAGE_FOUND, _outcome(1, cycle)))
        bus.publish_sync(Event(EventType.DISPATCH_COMPLETE, _outcome(1, cycle), timestamp_us=60))

        assert metrics.get_counter("cycles_found") == 1
        assert metrics.get_counter("dispatch_success") == 1
        assert metrics.best_profit_pct == pytest.approx(cycle.profit_pct)
        assert metrics.last_cycle == cycle.path_id
        assert metrics.get_latency_stats("pass").max_us == 50

    def test_to_dict_and_reset(self, bus_and_metrics: tuple[EventBus, MetricsCollector]) -> None:
        bus, metrics = bus_and_metrics
        bus.publish_sync(Event(EventType.DISPATCH_FAILED, _outcome(9)))
        metrics.record_latency("build", 5)

        exported = metrics.to_dict()
        assert exported["counters"]["dispatch_failed"] == 1  # type: ignore[index]
        assert exported["latencies"]["build"]["count"] == 1  # type: ignore[index]

        metrics.reset()
        assert metrics.get_counter("dispatch_failed") == 0
        assert metrics.get_all_latency_stats() == {}


class TestCLIReporter:
    """Tests for CLIReporter."""

    def test_render(self, cycle: ArbitrageCycle) -> None:
        metrics = MetricsCollector()
        metrics.increment_counter("observations", 1234)
        metrics.increment_counter("passes_cancelled", 3)
        metrics.record_latency("build", 150)
        reporter = CLIReporter(metrics, simulate=True)
        reporter.set_state(pair_count=3, venue_count=1)

        panel = reporter.render()
        lines = panel.splitlines()

        assert "SIMULATED" in lines[1]
        assert "DRY_RUN: ON" in lines[1]
        assert "Pairs: 3" in panel
        assert "Swaps: 1,234" in panel
        assert "Build: 150" in panel
        assert "Search: ---" in panel
        assert all(len(line) == 68 for line in lines)

    def test_display_without_clearing(self) -> None:
        output = io.StringIO()
        reporter = CLIReporter(MetricsCollector(), output=output, clear_screen=False)

        reporter.display()

        assert not output.getvalue().startswith("\033")
        assert "DEX ARBITRAGE ENGINE" in output.getvalue()

    def test_status_line(self) -> None:
        metrics = MetricsCollector()
        metrics.increment_counter("passes_started", 4)
        metrics.increment_counter("passes_cancelled", 2)

        line = CLIReporter(metrics).get_status_line()

        assert "Passes: 4/2 cancelled" in line

    def test_print_summary(self) -> None:
        output = io.StringIO()
        metrics = MetricsCollector()
        metrics.increment_counter("cycles_found", 2)
        reporter = CLIReporter(metrics, output=output)
        reporter.set_state(pair_count=5)

        reporter.print_summary()

        text = output.getvalue()
        assert "SESSION SUMMARY" in text
        assert "Pairs monitored: 5" in text
        assert "Cycles found: 2" in text
