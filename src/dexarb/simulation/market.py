"""
Simulated pairs for demo mode.

Generates random-walk rates with occasional mispricings so the engine
can be exercised without a node.
"""

import asyncio
import logging
import random
from collections.abc import AsyncIterator, Sequence

from dexarb.config.constants import DEFAULT_FEE_PER_THOUSAND
from dexarb.config.settings import PairConfig
from dexarb.core.types import PairIdentity, RateObservation
from dexarb.utils.time import get_timestamp_us


logger = logging.getLogger(__name__)


# Reference USD prices used to derive starting rates
REFERENCE_PRICES: dict[str, float] = {
    "ETH": 3500.0,
    "WETH": 3500.0,
    "WBTC": 65000.0,
    "USDT": 1.0,
    "USDC": 1.0,
    "DAI": 1.0,
    "MKR": 2800.0,
}


def reference_rate(asset_from: str, asset_to: str) -> float:
    """Units of ``asset_to`` per ``asset_from`` at reference prices."""
    return REFERENCE_PRICES.get(asset_from, 1.0) / REFERENCE_PRICES.get(asset_to, 1.0)


class SimulatedPair:
    """
    A pair whose rate follows a mean-reverting random walk.

    Features:
    - Gaussian shocks around a base rate
    - Occasional mispricing large enough to beat the pool fee
    - Swaps always succeed and are counted
    """

    def __init__(
        self,
        identity: PairIdentity,
        base_rate: float | None = None,
        volatility: float = 0.0004,
        tick_interval_ms: int = 500,
        opportunity_frequency: float = 0.02,
        opportunity_profit_range: tuple[float, float] = (0.001, 0.005),
        fee_per_thousand: int = DEFAULT_FEE_PER_THOUSAND,
        rng: random.Random | None = None,
    ) -> None:
        """
        Initialize simulated pair.

        Args:
            identity: Pair descriptor.
            base_rate: Equilibrium units of asset2 per asset1 (default: from reference prices).
            volatility: Standard deviation of the per-tick relative shock.
            tick_interval_ms: Mean milliseconds between simulated swaps.
            opportunity_frequency: Probability of a mispricing per tick.
            opportunity_profit_range: Min/max mispricing on top of fees.
            fee_per_thousand: Pool fee applied to quoted rates.
            rng: Random source, seedable for reproducible runs.
        """
        self._identity = identity
        self._base_rate = base_rate or reference_rate(identity.asset1, identity.asset2)
        self._current_rate = self._base_rate
        self._volatility = volatility
        self._tick_interval_ms = tick_interval_ms
        self._opportunity_frequency = opportunity_frequency
        self._opportunity_profit_range = opportunity_profit_range
        self._fee = fee_per_thousand / 1000
        self._rng = rng or random.Random()

        self._tick_count = 0
        self._opportunities_created = 0
        self._swaps: list[tuple[int, int]] = []

    @classmethod
    def from_config(cls, config: PairConfig, **kwargs: object) -> "SimulatedPair":
        """Build a simulated pair from a roster entry."""
        identity = PairIdentity(
            asset1=config.asset1,
            asset2=config.asset2,
            venue=config.venue,
            address=config.address,
            decimals1=config.decimals1,
            decimals2=config.decimals2,
        )
        return cls(identity, fee_per_thousand=config.fee_per_thousand, **kwargs)  # type: ignore[arg-type]

    def identity(self) -> PairIdentity:
        return self._identity

    def tick(self) -> RateObservation:
        """Advance the walk one step and quote the new rates."""
        self._tick_count += 1

        if self._rng.random() < self._opportunity_frequency:
            profit = self._rng.uniform(*self._opportunity_profit_range)
            # Three hops of pool fee must be covered for the loop to pay
            adjustment = 1 + profit + 3 * self._fee
            if self._rng.random() < 0.5:
                adjustment = 1 / adjustment
            self._current_rate *= adjustment
            self._opportunities_created += 1
            logger.debug(f"Mispricing {self._identity} by {adjustment - 1:+.4%}")

        self._current_rate *= 1 + self._rng.gauss(0, self._volatility)

        # Drift back toward equilibrium
        self._current_rate += (self._base_rate - self._current_rate) * 0.05

        return RateObservation(
            venue=self._identity.venue,
            asset_from=self._identity.asset1,
            asset_to=self._identity.asset2,
            address=self._identity.address,
            rate_forward=self._current_rate * (1 - self._fee),
            rate_backward=(1 / self._current_rate) * (1 - self._fee),
            observed_at=get_timestamp_us(),
        )

    async def monitor(self) -> AsyncIterator[RateObservation]:
        """Yield a simulated swap at jittered intervals."""
        while True:
            delay = self._tick_interval_ms / 1000 * self._rng.uniform(0.5, 1.5)
            await asyncio.sleep(delay)
            yield self.tick()

    async def execute_swap(self, amount_in1: int, amount_in2: int) -> bool:
        """Record the swap and report success."""
        self._swaps.append((amount_in1, amount_in2))
        await asyncio.sleep(0)
        return True

    @property
    def current_rate(self) -> float:
        return self._current_rate

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def opportunities_created(self) -> int:
        return self._opportunities_created

    @property
    def swaps(self) -> list[tuple[int, int]]:
        """Swaps executed so far, as ``(amount_in1, amount_in2)``."""
        return list(self._swaps)


def create_simulated_pairs(
    pairs: Sequence[PairConfig],
    tick_interval_ms: int = 500,
    seed: int | None = None,
) -> list[SimulatedPair]:
    """Build one simulated pair per roster entry, sharing a seeded RNG."""
    rng = random.Random(seed)
    return [
        SimulatedPair.from_config(config, tick_interval_ms=tick_interval_ms, rng=rng)
        for config in pairs
    ]
