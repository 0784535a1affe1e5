"""Domain events and the factory that builds them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# Event types
FILE_CREATED = "file.created"
FILE_UPDATED = "file.updated"
FILE_DELETED = "file.deleted"
AI_ACTION_PROCESSED = "ai.action.processed"

SOURCE_AI = "ai"
SOURCE_USER = "user"


@dataclass(frozen=True)
class DomainEvent:
    """An immutable fact broadcast after a state change."""

    type: str
    source: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime | None = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "type": self.type,
            "source": self.source,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "data": self.data,
        }


class EventFactory:
    """Builds the standard file and action events."""

    @staticmethod
    def file_created(
        file_path: str,
        content: str,
        workspace_id: str,
        source: str = SOURCE_USER,
    ) -> DomainEvent:
        return DomainEvent(
            type=FILE_CREATED,
            source=source,
            data={
                "file_path": file_path,
                "content": content,
                "workspace_id": workspace_id,
                "source": source,
            },
        )

    @staticmethod
    def file_updated(
        file_path: str,
        content: str,
        workspace_id: str,
        source: str = SOURCE_USER,
        previous_content: str | None = None,
    ) -> DomainEvent:
        return DomainEvent(
            type=FILE_UPDATED,
            source=source,
            data={
                "file_path": file_path,
                "content": content,
                "workspace_id": workspace_id,
                "source": source,
                "previous_content": previous_content,
            },
        )

    @staticmethod
    def file_deleted(
        file_path: str,
        workspace_id: str,
        source: str = SOURCE_USER,
    ) -> DomainEvent:
        return DomainEvent(
            type=FILE_DELETED,
            source=source,
            data={
                "file_path": file_path,
                "workspace_id": workspace_id,
                "source": source,
            },
        )

    @staticmethod
    def ai_action_processed(
        action_type: str,
        success: bool,
        file_path: str | None = None,
        error: str | None = None,
    ) -> DomainEvent:
        """Lifecycle event emitted once per executed action."""
        return DomainEvent(
            type=AI_ACTION_PROCESSED,
            source=SOURCE_AI,
            data={
                "action_type": action_type,
                "file_path": file_path,
                "success": success,
                "error": error,
            },
        )
