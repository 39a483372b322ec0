"""
Internal event bus for decoupled communication.

The scheduler publishes pass lifecycle events here; metrics and
reporting subscribe without the scheduler knowing about them.
"""

import itertools
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Generic, TypeVar

from dexarb.utils.time import get_timestamp_us


logger = logging.getLogger(__name__)


class EventType(Enum):
    """System event types and the payload each one carries."""

    RATE_OBSERVED = auto()  # RateObservation

    PASS_STARTED = auto()  # AnalysisPass
    PASS_CANCELLED = auto()  # PassOutcome
    ARBITRAGE_FOUND = auto()  # PassOutcome with cycle
    NO_ARBITRAGE = auto()  # PassOutcome

    DISPATCH_COMPLETE = auto()  # PassOutcome with dispatch
    DISPATCH_FAILED = auto()  # PassOutcome with dispatch

    MONITOR_STOPPED = auto()  # MarketMonitor
    SHUTDOWN = auto()  # None


T = TypeVar("T")


@dataclass
class Event(Generic[T]):
    """Event with typed payload, stamped at creation."""

    type: EventType
    payload: T
    timestamp_us: int = 0
    source: str = ""

    def __post_init__(self) -> None:
        if not self.timestamp_us:
            self.timestamp_us = get_timestamp_us()


EventHandler = Callable[[Event[Any]], Awaitable[None]]
SyncEventHandler = Callable[[Event[Any]], None]


@dataclass(order=True)
class _Subscription:
    # Sort key: higher priority first, then subscription order
    sort_key: tuple[int, int]
    handler: Callable[[Event[Any]], Any] = field(compare=False)
    is_async: bool = field(compare=False)


class EventBus:
    """
    In-process publish/subscribe.

    Handlers of one event type run in priority order (higher first, ties
    in subscription order). Sync handlers always run before async ones.
    A handler that raises is logged and skipped.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[EventType, list[_Subscription]] = defaultdict(list)
        self._sequence = itertools.count()

    def _add(
        self,
        event_type: EventType,
        handler: Callable[..., Any],
        priority: int,
        is_async: bool,
    ) -> None:
        subscriptions = self._subscriptions[event_type]
        subscriptions.append(_Subscription((-priority, next(self._sequence)), handler, is_async))
        subscriptions.sort()

    def subscribe(
        self,
        event_type: EventType,
        handler: EventHandler,
        priority: int = 0,
    ) -> None:
        """
        Subscribe an async handler to an event type.

        Args:
            event_type: Event type to handle.
            handler: Coroutine function taking the event.
            priority: Higher runs earlier.
        """
        self._add(event_type, handler, priority, is_async=True)

    def subscribe_sync(
        self,
        event_type: EventType,
        handler: SyncEventHandler,
        priority: int = 0,
    ) -> None:
        """Subscribe a plain function; it also runs on ``publish_sync``."""
        self._add(event_type, handler, priority, is_async=False)

    def unsubscribe(
        self,
        event_type: EventType,
        handler: EventHandler | SyncEventHandler,
    ) -> bool:
        """
        Remove the first subscription of ``handler``.

        Returns:
            True if the handler was subscribed.
        """
        subscriptions = self._subscriptions[event_type]
        for i, subscription in enumerate(subscriptions):
            if subscription.handler is handler:
                del subscriptions[i]
                return True
        return False

    async def publish(self, event: Event[Any]) -> None:
        """Deliver to sync handlers, then await each async handler."""
        self.publish_sync(event)

        for subscription in list(self._subscriptions[event.type]):
            if not subscription.is_async:
                continue
            try:
                await subscription.handler(event)
            except Exception as e:
                logger.error(f"Async handler error for {event.type}: {e}")

    def publish_sync(self, event: Event[Any]) -> None:
        """
        Deliver to sync handlers only.

        Used from the drain loop, where awaiting handlers would delay intake.
        """
        for subscription in list(self._subscriptions[event.type]):
            if subscription.is_async:
                continue
            try:
                subscription.handler(event)
            except Exception as e:
                logger.error(f"Sync handler error for {event.type}: {e}")

    def clear(self, event_type: EventType | None = None) -> None:
        """Drop the handlers of one event type, or of all types."""
        if event_type:
            self._subscriptions[event_type].clear()
        else:
            self._subscriptions.clear()

    def handler_count(self, event_type: EventType) -> int:
        return len(self._subscriptions[event_type])
