"""
Cycle execution.

Walks a detected cycle hop by hop and asks the owning pair to swap.
Hops run strictly in order because each one spends what the previous
one produced.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from dexarb.core.cancellation import CancellationToken
from dexarb.core.errors import PairNotFoundError
from dexarb.core.types import (
    ArbitrageCycle,
    DispatchResult,
    DispatchStatus,
    GraphEdge,
    HopResult,
    HopStatus,
    Pair,
)
from dexarb.utils.math import scale_amount
from dexarb.utils.time import LatencyTimer, get_timestamp_us


logger = logging.getLogger(__name__)


@dataclass
class DispatcherConfig:
    """Dispatcher configuration."""

    trade_amount: float = 1.0  # Units of the cycle's first asset
    dry_run: bool = True  # Simulate swaps


@dataclass(slots=True)
class _PlannedHop:
    hop: GraphEdge
    pair: Pair | None
    amount_in: float
    amount_out: float
    raw_amounts: tuple[int, int]


class ExecutionDispatcher:
    """
    Executes arbitrage cycles against the pair roster.

    Features:
    - Sequential hop execution in cycle order
    - Fixed trade size carried forward through the quoted rates
    - Commit point before the first trade; no abort after it
    - Dry-run simulation mode
    """

    def __init__(
        self,
        roster: Sequence[Pair],
        config: DispatcherConfig | None = None,
    ) -> None:
        """
        Initialize dispatcher.

        Args:
            roster: Pairs that can execute hops.
            config: Dispatcher configuration.
        """
        self._roster = list(roster)
        self._config = config or DispatcherConfig()

        # Statistics
        self._total_dispatches = 0
        self._successful_dispatches = 0
        self._failed_dispatches = 0

    async def dispatch(
        self,
        cycle: ArbitrageCycle,
        token: CancellationToken | None = None,
    ) -> DispatchResult:
        """
        Execute a cycle.

        Args:
            cycle: Detected cycle.
            token: Cancellation token of the owning pass. Checked and
                committed right before the first swap.

        Returns:
            DispatchResult with outcome.
        """
        start_time = get_timestamp_us()

        try:
            plan = self._plan(cycle)
        except PairNotFoundError as e:
            self._total_dispatches += 1
            self._failed_dispatches += 1
            logger.error(f"Cannot dispatch {cycle.path_id}: {e}")
            return self._result(cycle, DispatchStatus.FAILED, (), start_time, error=str(e))

        if token is not None and not token.commit():
            logger.debug(f"Dispatch of {cycle.path_id} cancelled before commit")
            return self._result(cycle, DispatchStatus.CANCELLED, (), start_time)

        self._total_dispatches += 1

        if self._config.dry_run:
            return self._dispatch_dry_run(cycle, plan, start_time)

        return await self._dispatch_live(cycle, plan, start_time)

    async def _dispatch_live(
        self,
        cycle: ArbitrageCycle,
        plan: list[_PlannedHop],
        start_time: int,
    ) -> DispatchResult:
        """Issue swaps one hop at a time, stopping at the first failure."""
        results: list[HopResult] = []

        logger.info(
            f"Executing cycle {cycle.path_id} with {self._config.trade_amount} "
            f"{cycle.start.asset}"
        )

        for index, step in enumerate(plan):
            if step.pair is None:
                results.append(self._hop_result(step, HopStatus.SKIPPED))
                continue

            error = await self._execute_hop(step)
            if error:
                results.append(self._hop_result(step, HopStatus.FAILED, error))
                self._failed_dispatches += 1
                logger.warning(
                    f"Cycle {cycle.path_id} failed at hop {index} ({step.hop!r}): {error}"
                )
                return self._result(
                    cycle,
                    DispatchStatus.FAILED,
                    tuple(results),
                    start_time,
                    failed_hop=index,
                    error=error,
                )

            results.append(self._hop_result(step, HopStatus.EXECUTED))

        self._successful_dispatches += 1
        return self._result(cycle, DispatchStatus.SUCCESS, tuple(results), start_time)

    def _dispatch_dry_run(
        self,
        cycle: ArbitrageCycle,
        plan: list[_PlannedHop],
        start_time: int,
    ) -> DispatchResult:
        """Simulate execution without calling any pair."""
        results = tuple(
            self._hop_result(step, HopStatus.SIMULATED if step.pair else HopStatus.SKIPPED)
            for step in plan
        )
        final_amount = plan[-1].amount_out if plan else 0.0

        logger.info(
            f"[DRY RUN] Cycle {cycle.path_id}: "
            f"In={self._config.trade_amount:.6f} Out={final_amount:.6f} "
            f"Return={cycle.profit_pct:.4f}%"
        )

        self._successful_dispatches += 1
        return self._result(cycle, DispatchStatus.SIMULATED, results, start_time)

    async def _execute_hop(self, step: _PlannedHop) -> str:
        """Run one swap. Returns an error message, empty on success."""
        amount_in1, amount_in2 = step.raw_amounts
        with LatencyTimer() as timer:
            try:
                ok = await step.pair.execute_swap(amount_in1, amount_in2)  # type: ignore[union-attr]
            except Exception as e:
                logger.error(f"Swap failed on {step.hop.address}: {e}")
                return str(e) or type(e).__name__

        logger.debug(
            f"Hop {step.hop!r}: amounts=({amount_in1}, {amount_in2}), "
            f"ok={ok}, latency={timer.latency_us}μs"
        )
        return "" if ok else "swap rejected"

    def _plan(self, cycle: ArbitrageCycle) -> list[_PlannedHop]:
        """
        Resolve pairs and amounts for every hop before trading.

        Raises:
            PairNotFoundError: If a pair hop has no matching roster entry.
        """
        plan: list[_PlannedHop] = []
        amount = self._config.trade_amount

        for hop in cycle.hops:
            amount_out = amount * hop.effective_rate
            if hop.is_bridge:
                plan.append(_PlannedHop(hop, None, amount, amount_out, (0, 0)))
                amount = amount_out
                continue

            pair = self._find_pair(hop)
            identity = pair.identity()
            raw = scale_amount(amount, identity.decimals_of(hop.source.asset))
            raw_amounts = (raw, 0) if hop.source.asset == identity.asset1 else (0, raw)

            plan.append(_PlannedHop(hop, pair, amount, amount_out, raw_amounts))
            amount = amount_out

        return plan

    def _find_pair(self, hop: GraphEdge) -> Pair:
        """Roster pair that trades the hop's assets on its venue."""
        venue = hop.source.venue
        asset_from, asset_to = hop.source.asset, hop.target.asset

        fallback: Pair | None = None
        for pair in self._roster:
            identity = pair.identity()
            if not identity.matches(venue, asset_from, asset_to):
                continue
            if not hop.address or identity.address == hop.address:
                return pair
            fallback = fallback or pair

        if fallback is None:
            raise PairNotFoundError(venue, asset_from, asset_to)
        return fallback

    @staticmethod
    def _hop_result(step: _PlannedHop, status: HopStatus, error: str = "") -> HopResult:
        return HopResult(
            hop=step.hop,
            status=status,
            amount_in=step.amount_in,
            amount_out=step.amount_out,
            raw_amounts=step.raw_amounts,
            error_message=error,
        )

    @staticmethod
    def _result(
        cycle: ArbitrageCycle,
        status: DispatchStatus,
        hops: tuple[HopResult, ...],
        start_time: int,
        failed_hop: int | None = None,
        error: str = "",
    ) -> DispatchResult:
        return DispatchResult(
            cycle=cycle,
            status=status,
            hops=hops,
            failed_hop=failed_hop,
            error_message=error,
            start_timestamp_us=start_time,
            end_timestamp_us=get_timestamp_us(),
        )

    @property
    def stats(self) -> dict[str, int]:
        """Get dispatch statistics."""
        return {
            "total": self._total_dispatches,
            "successful": self._successful_dispatches,
            "failed": self._failed_dispatches,
        }

    @property
    def config(self) -> DispatcherConfig:
        return self._config
