"""In-process publish/subscribe for domain events.

Emission is synchronous: every current subscriber for the event type is
invoked before emit() returns. Handlers that return a coroutine are
scheduled on the running loop; their failures are logged and never reach
the emitter.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from actionflow.events.models import DomainEvent

if TYPE_CHECKING:
    from actionflow.core.logging import StructuredLogger
    from actionflow.events.middleware import EventMiddleware

EventHandler = Callable[[dict[str, Any]], Awaitable[None] | None]

DEFAULT_HISTORY_SIZE = 1000
DEFAULT_MAX_EVENT_AGE_SECONDS = 3600


class InvalidEventError(ValueError):
    """Event is missing a required field."""

    pass


@dataclass
class _Subscription:
    id: int
    event_type: str
    handler: EventHandler
    once: bool


class EventSubscription:
    """Handle returned by on()/once(); also usable as a context manager."""

    def __init__(self, bus: EventBusService, event_type: str, subscription_id: int) -> None:
        self._bus = bus
        self.event_type = event_type
        self.subscription_id = subscription_id

    def unsubscribe(self) -> None:
        """Remove the subscription. Safe to call more than once."""
        self._bus._remove_subscriptions(self.event_type, {self.subscription_id})

    def __enter__(self) -> EventSubscription:
        return self

    def __exit__(self, *args: Any) -> None:
        self.unsubscribe()


class EventBusService:
    """Synchronous event bus with bounded history."""

    def __init__(
        self,
        logger: StructuredLogger | None = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ) -> None:
        """Initialize the bus.

        Args:
            logger: Logger for handler failures
            history_size: Maximum number of retained events
        """
        self._logger = logger
        self._subscriptions: dict[str, list[_Subscription]] = {}
        self._ids = itertools.count(1)
        self._history: deque[DomainEvent] = deque(maxlen=history_size)
        self._pending: set[asyncio.Task[Any]] = set()

    def emit(self, event: DomainEvent) -> None:
        """Deliver an event to every current subscriber of its type.

        Raises:
            InvalidEventError: If type, timestamp or source is missing.
        """
        self._validate_event(event)
        self._history.append(event)

        to_remove: set[int] = set()
        # Iterate over a snapshot; handlers may subscribe or unsubscribe
        for subscription in list(self._subscriptions.get(event.type, [])):
            try:
                result = subscription.handler(event.data)
                if inspect.isawaitable(result):
                    self._schedule(event.type, result)
            except Exception as e:
                self._log_handler_error(event.type, e)
            if subscription.once:
                to_remove.add(subscription.id)

        if to_remove:
            self._remove_subscriptions(event.type, to_remove)

    def on(self, event_type: str, handler: EventHandler) -> EventSubscription:
        """Subscribe to every event of a type."""
        return self._subscribe(event_type, handler, once=False)

    def once(self, event_type: str, handler: EventHandler) -> EventSubscription:
        """Subscribe to the next event of a type only."""
        return self._subscribe(event_type, handler, once=True)

    def off(self, event_type: str) -> None:
        """Remove all subscribers for an event type."""
        self._subscriptions.pop(event_type, None)

    def clear(self) -> None:
        """Remove all subscriptions and history."""
        self._subscriptions.clear()
        self._history.clear()

    def get_subscription_count(self, event_type: str | None = None) -> int:
        """Count subscriptions, for one type or across all types."""
        if event_type is not None:
            return len(self._subscriptions.get(event_type, []))
        return sum(len(subs) for subs in self._subscriptions.values())

    def get_event_history(self) -> list[DomainEvent]:
        """Get a copy of the event history, oldest first."""
        return list(self._history)

    def get_event_statistics(self) -> dict[str, Any]:
        """Aggregate statistics over the event history."""
        by_type: dict[str, int] = {}
        by_source: dict[str, int] = {}
        cutoff = datetime.now(UTC) - timedelta(minutes=1)
        recent = 0
        for event in self._history:
            by_type[event.type] = by_type.get(event.type, 0) + 1
            by_source[event.source] = by_source.get(event.source, 0) + 1
            if event.timestamp is not None and event.timestamp > cutoff:
                recent += 1

        return {
            "total_events": len(self._history),
            "events_by_type": by_type,
            "events_by_source": by_source,
            "recent_events": recent,
            "active_subscriptions": self.get_subscription_count(),
        }

    def clear_old_events(
        self,
        older_than_seconds: float = DEFAULT_MAX_EVENT_AGE_SECONDS,
    ) -> int:
        """Drop history entries older than the cutoff.

        Returns:
            Number of events removed.
        """
        cutoff = datetime.now(UTC) - timedelta(seconds=older_than_seconds)
        kept = [e for e in self._history if e.timestamp is not None and e.timestamp > cutoff]
        removed = len(self._history) - len(kept)
        self._history.clear()
        self._history.extend(kept)
        return removed

    async def wait_for_handlers(self) -> None:
        """Wait until all scheduled async handlers have finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _subscribe(
        self,
        event_type: str,
        handler: EventHandler,
        once: bool,
    ) -> EventSubscription:
        subscription = _Subscription(next(self._ids), event_type, handler, once)
        self._subscriptions.setdefault(event_type, []).append(subscription)
        return EventSubscription(self, event_type, subscription.id)

    def _remove_subscriptions(self, event_type: str, ids: set[int]) -> None:
        existing = self._subscriptions.get(event_type)
        if existing is None:
            return
        remaining = [sub for sub in existing if sub.id not in ids]
        if remaining:
            self._subscriptions[event_type] = remaining
        else:
            del self._subscriptions[event_type]

    def _schedule(self, event_type: str, awaitable: Awaitable[Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: run the handler to completion here
            try:
                asyncio.run(_as_coroutine(awaitable))
            except Exception as e:
                self._log_handler_error(event_type, e)
            return

        task = loop.create_task(_as_coroutine(awaitable))
        self._pending.add(task)

        def _done(finished: asyncio.Task[Any]) -> None:
            self._pending.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                self._log_handler_error(event_type, finished.exception())

        task.add_done_callback(_done)

    def _log_handler_error(self, event_type: str, error: BaseException | None) -> None:
        if self._logger:
            self._logger.error(
                f"Error in event handler for {event_type}",
                event_type_name=event_type,
                error={"name": type(error).__name__, "message": str(error)},
            )

    @staticmethod
    def _validate_event(event: DomainEvent) -> None:
        if not event.type:
            raise InvalidEventError("Event must have a type")
        if not event.timestamp:
            raise InvalidEventError("Event must have a timestamp")
        if not event.source:
            raise InvalidEventError("Event must have a source")


async def _as_coroutine(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


class EnhancedEventBusService(EventBusService):
    """Event bus that threads events through a middleware chain first.

    A middleware returning None vetoes emission.
    """

    def __init__(
        self,
        logger: StructuredLogger | None = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ) -> None:
        super().__init__(logger=logger, history_size=history_size)
        self._middleware: list[EventMiddleware] = []

    def add_middleware(self, middleware: EventMiddleware) -> None:
        """Append a middleware to the chain."""
        self._middleware.append(middleware)

    def remove_middleware(self, middleware: EventMiddleware) -> None:
        """Remove a middleware if present."""
        if middleware in self._middleware:
            self._middleware.remove(middleware)

    def emit(self, event: DomainEvent) -> None:
        processed: DomainEvent | None = event
        for middleware in self._middleware:
            processed = middleware.process(processed)
            if processed is None:
                return
        super().emit(processed)
