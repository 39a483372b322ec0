"""
Market monitor tasks.

Each monitored pair gets one task that forwards its rate observations
into the shared aggregator.
"""

import asyncio
import logging
from enum import Enum, auto

from dexarb.core.history import EventAggregator
from dexarb.core.types import Pair, PairIdentity


logger = logging.getLogger(__name__)


class MonitorState(Enum):
    """Monitor lifecycle state."""

    IDLE = auto()
    RUNNING = auto()
    STOPPED = auto()
    FAILED = auto()


class MarketMonitor:
    """
    Forwards one pair's observations to the aggregator.

    A failure ends this monitor only; the rest of the engine keeps running.
    """

    def __init__(self, pair: Pair, aggregator: EventAggregator) -> None:
        """
        Initialize monitor.

        Args:
            pair: Pair to watch.
            aggregator: Shared observation intake.
        """
        self._pair = pair
        self._identity: PairIdentity = pair.identity()
        self._aggregator = aggregator
        self._state = MonitorState.IDLE
        self._observation_count = 0
        self._error: BaseException | None = None

    async def run(self) -> None:
        """Consume the pair's observation stream until cancelled or it fails."""
        self._state = MonitorState.RUNNING
        logger.info(f"Monitoring swaps for {self._identity}")

        try:
            async for observation in self._pair.monitor():
                self._aggregator.record(observation)
                self._observation_count += 1
            self._state = MonitorState.STOPPED
            logger.info(f"Swap stream ended for {self._identity}")
        except asyncio.CancelledError:
            self._state = MonitorState.STOPPED
            logger.debug(f"Monitor for {self._identity} cancelled")
            raise
        except Exception as e:
            self._state = MonitorState.FAILED
            self._error = e
            logger.error(f"Monitor for {self._identity} failed: {e}")

    @property
    def identity(self) -> PairIdentity:
        return self._identity

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def observation_count(self) -> int:
        """Observations forwarded so far."""
        return self._observation_count

    @property
    def error(self) -> BaseException | None:
        """Exception that ended the monitor, if any."""
        return self._error
