"""
Main arbitrage engine orchestrator.

Wires pairs, monitors, the analysis scheduler and telemetry together
and manages their lifecycle.
"""

import asyncio
import logging
import signal
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

from dexarb.config.settings import Settings
from dexarb.core.event_bus import Event, EventBus, EventType
from dexarb.core.history import EventAggregator
from dexarb.core.scheduler import AnalysisScheduler
from dexarb.core.types import Pair
from dexarb.execution.dispatcher import DispatcherConfig, ExecutionDispatcher
from dexarb.market.monitor import MarketMonitor
from dexarb.simulation.market import create_simulated_pairs
from dexarb.strategy.detector import CycleDetector
from dexarb.strategy.graph import ConstantBridgeCost, RateGraphBuilder
from dexarb.telemetry.metrics import MetricsCollector
from dexarb.telemetry.reporter import CLIReporter
from dexarb.venues.rpc import JsonRpcClient
from dexarb.venues.uniswap_v2 import UniswapV2Pair


logger = logging.getLogger(__name__)


class ArbitrageEngine:
    """
    Main engine orchestrator.

    Manages the complete lifecycle of:
    - Node connectivity (or simulated pairs)
    - One monitor task per pair
    - The analysis scheduler
    - Telemetry and reporting
    """

    def __init__(self, settings: Settings, pairs: Sequence[Pair] | None = None) -> None:
        """
        Initialize the engine.

        Args:
            settings: Application settings.
            pairs: Pre-built pairs; built from ``settings.pairs`` if omitted.
        """
        self._settings = settings
        self._pairs: list[Pair] = list(pairs) if pairs is not None else []
        self._running = False
        self._shutdown_event = asyncio.Event()
        self._shut_down = False

        # Components (initialized in setup)
        self._rpc: JsonRpcClient | None = None
        self._aggregator = EventAggregator()
        self._scheduler: AnalysisScheduler | None = None
        self._monitors: list[MarketMonitor] = []

        # Tasks
        self._scheduler_task: asyncio.Task[None] | None = None
        self._monitor_tasks: list[asyncio.Task[None]] = []

        # Infrastructure
        self._event_bus = EventBus()
        self._metrics = MetricsCollector()
        self._metrics.attach(self._event_bus)
        self._reporter: CLIReporter | None = None

    def _build_pairs(self) -> list[Pair]:
        if self._settings.simulate:
            logger.info("Using simulated pairs")
            return list(create_simulated_pairs(self._settings.pairs))

        self._rpc = JsonRpcClient(self._settings.node_url)
        return [
            UniswapV2Pair.from_config(config, self._rpc, sender=self._settings.sender_address)
            for config in self._settings.pairs
        ]

    async def setup(self) -> AnalysisScheduler:
        """Initialize all components. Returns the scheduler."""
        logger.info("Initializing arbitrage engine...")

        if not self._pairs:
            self._pairs = self._build_pairs()
        roster = [pair.identity() for pair in self._pairs]
        venues = {identity.venue for identity in roster}
        logger.info(f"Roster: {len(roster)} pairs across {len(venues)} venues")

        builder = RateGraphBuilder(
            fee_rate=self._settings.fee_rate,
            bridge_cost=ConstantBridgeCost(self._settings.bridge_cost),
        )
        detector = CycleDetector(tolerance=self._settings.tolerance)
        dispatcher = ExecutionDispatcher(
            self._pairs,
            DispatcherConfig(
                trade_amount=self._settings.trade_amount,
                dry_run=self._settings.dry_run,
            ),
        )

        scheduler = AnalysisScheduler(
            aggregator=self._aggregator,
            roster=roster,
            builder=builder,
            detector=detector,
            dispatcher=dispatcher,
            event_bus=self._event_bus,
        )
        self._scheduler = scheduler
        self._monitors = [MarketMonitor(pair, self._aggregator) for pair in self._pairs]

        if self._settings.show_status:
            self._reporter = CLIReporter(
                metrics=self._metrics,
                dry_run=self._settings.dry_run,
                simulate=self._settings.simulate,
            )
            self._reporter.set_state(pair_count=len(roster), venue_count=len(venues))

        logger.info("Engine initialization complete")
        return scheduler

    async def start(self) -> None:
        """Start the scheduler and one task per monitor."""
        scheduler = self._scheduler or await self.setup()

        self._running = True
        self._scheduler_task = asyncio.create_task(scheduler.run(), name="scheduler")

        for monitor in self._monitors:
            task = asyncio.create_task(monitor.run(), name=f"monitor-{monitor.identity.address}")
            task.add_done_callback(lambda _t, m=monitor: self._on_monitor_done(m))
            self._monitor_tasks.append(task)

        if self._reporter:
            self._reporter.start(interval=self._settings.report_interval)

        logger.info(f"Monitoring {len(self._monitors)} pairs")

    def _on_monitor_done(self, monitor: MarketMonitor) -> None:
        self._event_bus.publish_sync(Event(EventType.MONITOR_STOPPED, monitor, source="engine"))

    async def run(self) -> None:
        """Run until a shutdown signal or ``stop()``."""
        loop = asyncio.get_running_loop()
        signals = (signal.SIGINT, signal.SIGTERM)
        for sig in signals:
            loop.add_signal_handler(sig, self.stop)

        try:
            await self.start()
            await self._shutdown_event.wait()
        except Exception as e:
            logger.error(f"Engine error: {e}")
            raise
        finally:
            for sig in signals:
                loop.remove_signal_handler(sig)
            await self.shutdown()

    def stop(self) -> None:
        """Request shutdown."""
        logger.info("Shutdown requested")
        self._running = False
        self._shutdown_event.set()

    async def shutdown(self) -> None:
        """Gracefully shut down the engine. Safe to call more than once."""
        if self._shut_down:
            return
        self._shut_down = True
        logger.info("Shutting down engine...")
        self._running = False

        # Stop intake first so no new passes start
        for task in self._monitor_tasks:
            task.cancel()
        if self._monitor_tasks:
            await asyncio.gather(*self._monitor_tasks, return_exceptions=True)

        if self._scheduler is not None:
            self._scheduler.stop()
        if self._scheduler_task is not None:
            await asyncio.gather(self._scheduler_task, return_exceptions=True)

        if self._reporter:
            self._reporter.stop()
            self._reporter.print_summary()

        if self._rpc is not None:
            await self._rpc.close()

        await self._event_bus.publish(Event(EventType.SHUTDOWN, None, source="engine"))
        logger.info("Engine shutdown complete")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def scheduler(self) -> AnalysisScheduler | None:
        return self._scheduler

    @property
    def monitors(self) -> list[MarketMonitor]:
        return list(self._monitors)

    @property
    def pairs(self) -> list[Pair]:
        return list(self._pairs)


@asynccontextmanager
async def create_engine(
    settings: Settings,
    pairs: Sequence[Pair] | None = None,
) -> AsyncIterator[ArbitrageEngine]:
    """
    Create and manage engine lifecycle.

    Usage:
        async with create_engine(settings) as engine:
            await engine.start()
            ...
    """
    engine = ArbitrageEngine(settings, pairs)

    try:
        await engine.setup()
        yield engine
    finally:
        await engine.shutdown()
