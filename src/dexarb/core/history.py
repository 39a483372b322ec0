"""
Observation intake and history.

Market monitors hand observations to the EventAggregator; the analysis
scheduler drains it and is the only writer of the History.
"""

import asyncio
import logging
from collections.abc import Iterator

from dexarb.core.types import RateObservation


logger = logging.getLogger(__name__)


class History:
    """
    Append-only, ordered log of rate observations.

    Readers get tuple snapshots, never the live list.
    """

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: list[RateObservation] = []

    def append(self, observation: RateObservation) -> None:
        """Append an observation. Existing entries are never touched."""
        self._entries.append(observation)

    def snapshot(self) -> tuple[RateObservation, ...]:
        """Immutable copy of the history as of now."""
        return tuple(self._entries)

    @property
    def latest(self) -> RateObservation | None:
        """Most recently appended observation."""
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RateObservation]:
        return iter(self.snapshot())


class EventAggregator:
    """
    Single ordered intake point for observations from every monitor.

    ``record`` never blocks and is safe to call from any number of tasks;
    observations come out of ``next`` in the order they were recorded.
    """

    def __init__(self) -> None:
        """Initialize aggregator."""
        self._queue: asyncio.Queue[RateObservation] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._received = 0

    def record(self, observation: RateObservation) -> None:
        """
        Accept an observation from a market monitor.

        Args:
            observation: Validated observation for one pair.
        """
        self._queue.put_nowait(observation)
        self._received += 1
        logger.debug(
            f"Recorded {observation.venue} {observation.asset_from}/{observation.asset_to} "
            f"at {observation.observed_at}"
        )

    def record_threadsafe(self, observation: RateObservation) -> None:
        """
        Accept an observation from a worker thread.

        Requires that ``bind`` was called from the consuming loop first.
        """
        if self._loop is None:
            raise RuntimeError("Aggregator is not bound to an event loop")
        self._loop.call_soon_threadsafe(self.record, observation)

    def bind(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Bind to the consuming event loop."""
        self._loop = loop or asyncio.get_running_loop()

    async def next(self) -> RateObservation:
        """Wait for the next recorded observation."""
        return await self._queue.get()

    def next_nowait(self) -> RateObservation | None:
        """Return the next observation if one is already queued."""
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    @property
    def pending(self) -> int:
        """Observations recorded but not yet drained."""
        return self._queue.qsize()

    @property
    def received(self) -> int:
        """Total observations recorded."""
        return self._received
