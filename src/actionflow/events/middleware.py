"""Middleware applied to events before emission."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from actionflow.events.models import DomainEvent

if TYPE_CHECKING:
    from actionflow.core.logging import StructuredLogger


class EventMiddleware(Protocol):
    """Transforms an event, or returns None to veto it."""

    def process(self, event: DomainEvent) -> DomainEvent | None: ...


class LoggingMiddleware:
    """Logs every event passing through the chain."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger = logger

    def process(self, event: DomainEvent) -> DomainEvent:
        self._logger.info(
            f"Event emitted: {event.type}",
            event_type="event",
            source=event.source,
            timestamp=event.timestamp,
            data={k: v for k, v in event.data.items() if k not in ("content", "previous_content")},
        )
        return event


class ValidationMiddleware:
    """Vetoes structurally invalid events and file events without a path."""

    def __init__(self, logger: StructuredLogger | None = None) -> None:
        self._logger = logger

    def process(self, event: DomainEvent) -> DomainEvent | None:
        if not event.type or not event.timestamp or not event.source:
            self._reject("Invalid event structure", event)
            return None

        if event.type.startswith("file.") and not event.data.get("file_path"):
            self._reject("File events must have file_path in data", event)
            return None

        return event

    def _reject(self, reason: str, event: DomainEvent) -> None:
        if self._logger:
            self._logger.error(reason, event={"type": event.type, "source": event.source})
