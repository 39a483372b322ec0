"""
Event-driven analysis scheduler.

Drains the aggregator into the history and runs one analysis pass
(build, search, dispatch) per observation. A newer observation cancels
the running pass unless it has already committed to trading.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Sequence

from dexarb.config.constants import MAX_PASS_OUTCOMES
from dexarb.core.cancellation import CancellationToken
from dexarb.core.errors import PassCancelled
from dexarb.core.event_bus import Event, EventBus, EventType
from dexarb.core.history import EventAggregator, History
from dexarb.core.types import (
    ArbitrageCycle,
    DispatchResult,
    DispatchStatus,
    PairIdentity,
    PassOutcome,
    PassState,
    RateObservation,
)
from dexarb.execution.dispatcher import ExecutionDispatcher
from dexarb.strategy.detector import CycleDetector
from dexarb.strategy.graph import RateGraph, RateGraphBuilder
from dexarb.utils.math import format_profit
from dexarb.utils.time import LatencyTimer


logger = logging.getLogger(__name__)


class AnalysisPass:
    """One build + search + dispatch run over a fixed history snapshot."""

    def __init__(
        self,
        pass_id: int,
        snapshot: tuple[RateObservation, ...],
        roster: tuple[PairIdentity, ...],
        builder: RateGraphBuilder,
        detector: CycleDetector,
        dispatcher: ExecutionDispatcher,
        event_bus: EventBus,
    ) -> None:
        self.pass_id = pass_id
        self.snapshot = snapshot
        self.token = CancellationToken()
        self.state = PassState.IDLE

        self._roster = roster
        self._builder = builder
        self._detector = detector
        self._dispatcher = dispatcher
        self._event_bus = event_bus

    def cancel(self) -> bool:
        """Ask the pass to stop at its next checkpoint."""
        return self.token.cancel()

    @property
    def is_committed(self) -> bool:
        """Pass has started issuing trades and will run to completion."""
        return self.token.committed

    async def run(self) -> PassOutcome:
        """
        Execute the pass.

        Returns:
            Terminal outcome; state CANCELLED if superseded before commit.
        """
        outcome = PassOutcome(
            pass_id=self.pass_id,
            state=PassState.IDLE,
            history_size=len(self.snapshot),
        )

        try:
            self.state = PassState.BUILDING
            with LatencyTimer() as build_timer:
                graph: RateGraph = await asyncio.to_thread(
                    self._builder.build, self._roster, self.snapshot
                )
            outcome.build_latency_us = build_timer.latency_us
            self.token.raise_if_cancelled()

            self.state = PassState.SEARCHING
            with LatencyTimer() as search_timer:
                cycle = await asyncio.to_thread(self._detector.find_arbitrage, graph)
            outcome.search_latency_us = search_timer.latency_us
            self.token.raise_if_cancelled()

            if cycle is None:
                self.state = PassState.IDLE
                outcome.state = PassState.IDLE
                await self._report_no_arbitrage(outcome, graph)
                return outcome

            outcome.cycle = cycle
            self.state = PassState.DISPATCHING
            result = await self._dispatcher.dispatch(cycle, self.token)
            outcome.dispatch = result
            if result.status == DispatchStatus.CANCELLED:
                raise PassCancelled()

            self.state = PassState.IDLE
            outcome.state = PassState.IDLE
            await self._report_arbitrage(outcome, cycle)
            await self._report_dispatch(outcome, cycle, result)
            return outcome

        except PassCancelled:
            self.state = PassState.CANCELLED
            outcome.state = PassState.CANCELLED
            logger.debug(f"[pass {self.pass_id}] Cancelled by newer observation")
            await self._event_bus.publish(
                Event(EventType.PASS_CANCELLED, outcome, source="scheduler")
            )
            return outcome

    async def _report_no_arbitrage(self, outcome: PassOutcome, graph: RateGraph) -> None:
        logger.info(
            f"[pass {self.pass_id}] No arbitrage opportunity found "
            f"({graph.node_count} nodes, {graph.edge_count} edges)"
        )
        await self._event_bus.publish(Event(EventType.NO_ARBITRAGE, outcome, source="scheduler"))

    async def _report_arbitrage(self, outcome: PassOutcome, cycle: ArbitrageCycle) -> None:
        # Only passes that got past the commit point report a detection
        logger.info(
            f"[pass {self.pass_id}] Arbitrage opportunity detected: {cycle.path_id} "
            f"({format_profit(cycle.profit_pct)})"
        )
        await self._event_bus.publish(
            Event(EventType.ARBITRAGE_FOUND, outcome, source="scheduler")
        )

    async def _report_dispatch(
        self,
        outcome: PassOutcome,
        cycle: ArbitrageCycle,
        result: DispatchResult,
    ) -> None:
        if result.is_success:
            logger.info(
                f"[pass {self.pass_id}] Dispatch {result.status.value.lower()}: "
                f"{cycle.path_id} latency={result.total_latency_us}μs"
            )
            await self._event_bus.publish(
                Event(EventType.DISPATCH_COMPLETE, outcome, source="scheduler")
            )
        else:
            logger.warning(
                f"[pass {self.pass_id}] Dispatch failed at hop {result.failed_hop}: "
                f"{result.error_message}"
            )
            await self._event_bus.publish(
                Event(EventType.DISPATCH_FAILED, outcome, source="scheduler")
            )


class AnalysisScheduler:
    """
    Sole consumer of the aggregator and sole writer of the history.

    Features:
    - One analysis pass per recorded observation
    - Latest-wins: a new observation cancels the running pass
    - Passes never cancelled after their first trade
    - Intake continues while passes compute in worker threads
    """

    def __init__(
        self,
        aggregator: EventAggregator,
        roster: Sequence[PairIdentity],
        builder: RateGraphBuilder,
        detector: CycleDetector,
        dispatcher: ExecutionDispatcher,
        event_bus: EventBus | None = None,
        max_outcomes: int = MAX_PASS_OUTCOMES,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            aggregator: Intake of observations from all monitors.
            roster: Identities of the monitored pairs.
            builder: Rate graph builder.
            detector: Cycle detector.
            dispatcher: Execution dispatcher.
            event_bus: Bus for pass lifecycle events.
            max_outcomes: Finished pass outcomes kept for inspection.
        """
        self._aggregator = aggregator
        self._roster = tuple(roster)
        self._builder = builder
        self._detector = detector
        self._dispatcher = dispatcher
        self._event_bus = event_bus or EventBus()

        self._history = History()
        self._shutdown_event = asyncio.Event()
        self._current: AnalysisPass | None = None
        self._active: dict[int, AnalysisPass] = {}
        self._tasks: set[asyncio.Task[PassOutcome]] = set()
        self._outcomes: deque[PassOutcome] = deque(maxlen=max_outcomes)
        self._pass_counter = 0
        self._running = False

    async def run(self) -> None:
        """Drain loop. Returns after ``stop()``."""
        self._running = True
        self._aggregator.bind()
        logger.info(f"Analysis scheduler started for {len(self._roster)} pairs")

        shutdown_wait = asyncio.create_task(self._shutdown_event.wait())
        next_observation: asyncio.Task[RateObservation] | None = None
        try:
            while not self._shutdown_event.is_set():
                next_observation = asyncio.create_task(self._aggregator.next())
                done, _ = await asyncio.wait(
                    {next_observation, shutdown_wait},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if next_observation not in done:
                    break

                self.ingest(next_observation.result())
        finally:
            if next_observation is not None and not next_observation.done():
                next_observation.cancel()
            shutdown_wait.cancel()
            self._running = False
            await self._drain_passes()
            logger.info("Analysis scheduler stopped")

    def ingest(self, observation: RateObservation) -> AnalysisPass:
        """
        Append an observation and start a fresh pass over the new history.

        Cancels the current pass first if it has not committed.
        """
        self._history.append(observation)
        self._event_bus.publish_sync(
            Event(EventType.RATE_OBSERVED, observation, source="scheduler")
        )
        logger.debug(
            f"Swap on {observation.venue} {observation.asset_from}/{observation.asset_to} "
            f"({observation.address}), history={len(self._history)}"
        )

        for stale in self._active.values():
            if stale.cancel():
                logger.debug(f"Cancelling pass {stale.pass_id}")

        return self._start_pass()

    def _start_pass(self) -> AnalysisPass:
        self._pass_counter += 1
        analysis = AnalysisPass(
            pass_id=self._pass_counter,
            snapshot=self._history.snapshot(),
            roster=self._roster,
            builder=self._builder,
            detector=self._detector,
            dispatcher=self._dispatcher,
            event_bus=self._event_bus,
        )
        self._current = analysis
        self._active[analysis.pass_id] = analysis

        task = asyncio.create_task(self._run_pass(analysis), name=f"pass-{analysis.pass_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        self._event_bus.publish_sync(Event(EventType.PASS_STARTED, analysis, source="scheduler"))
        return analysis

    async def _run_pass(self, analysis: AnalysisPass) -> PassOutcome:
        """Run a pass, keeping unexpected errors inside it."""
        try:
            outcome = await analysis.run()
        except Exception as e:
            logger.error(f"[pass {analysis.pass_id}] Analysis error: {e}", exc_info=True)
            outcome = PassOutcome(
                pass_id=analysis.pass_id,
                state=PassState.IDLE,
                history_size=len(analysis.snapshot),
            )
        finally:
            self._active.pop(analysis.pass_id, None)
        self._outcomes.append(outcome)
        return outcome

    async def _drain_passes(self) -> None:
        """Cancel uncommitted passes and wait for all of them to finish."""
        for analysis in self._active.values():
            analysis.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def stop(self) -> None:
        """Signal the drain loop to exit."""
        logger.info("Stopping analysis scheduler")
        self._shutdown_event.set()

    async def wait_idle(self) -> None:
        """Wait until every started pass has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def history(self) -> History:
        return self._history

    @property
    def current_pass(self) -> AnalysisPass | None:
        """Most recently started pass."""
        return self._current

    @property
    def outcomes(self) -> list[PassOutcome]:
        """Most recent finished pass outcomes, in completion order."""
        return list(self._outcomes)

    @property
    def passes_started(self) -> int:
        return self._pass_counter

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus
