"""Domain events, event bus and middleware."""

from actionflow.events.bus import (
    EnhancedEventBusService,
    EventBusService,
    EventHandler,
    EventSubscription,
    InvalidEventError,
)
from actionflow.events.middleware import (
    EventMiddleware,
    LoggingMiddleware,
    ValidationMiddleware,
)
from actionflow.events.models import (
    AI_ACTION_PROCESSED,
    FILE_CREATED,
    FILE_DELETED,
    FILE_UPDATED,
    SOURCE_AI,
    SOURCE_USER,
    DomainEvent,
    EventFactory,
)

__all__ = [
    # Events
    "DomainEvent",
    "EventFactory",
    "FILE_CREATED",
    "FILE_UPDATED",
    "FILE_DELETED",
    "AI_ACTION_PROCESSED",
    "SOURCE_AI",
    "SOURCE_USER",
    # Bus
    "EventBusService",
    "EnhancedEventBusService",
    "EventHandler",
    "EventSubscription",
    "InvalidEventError",
    # Middleware
    "EventMiddleware",
    "LoggingMiddleware",
    "ValidationMiddleware",
]
