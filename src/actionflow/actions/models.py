"""Value types flowing through the action pipeline.

AIAction and AIArtifact are produced by an external parser and are
immutable once handed over. OperationProgress and OperationResult are
ephemeral values produced within a single execution.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from actionflow.core.error_handling import ErrorHandlingService
    from actionflow.core.validation import ValidationService
    from actionflow.events.bus import EventBusService
    from actionflow.services.protocols import EditorService, FileService


class ActionType(Enum):
    """Recognized action tags."""

    FILE = "file"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    SHELL = "shell"
    START = "start"


class ProgressStatus(Enum):
    """Status of an operation in a progress update."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class AIAction:
    """A single proposed file or shell mutation."""

    type: str
    file_path: str | None = None
    content: str | None = None
    command: str | None = None
    description: str | None = None
    id: str | None = None

    @property
    def action_type(self) -> ActionType | None:
        """The recognized tag, or None for an unknown type."""
        try:
            return ActionType(self.type)
        except ValueError:
            return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AIAction:
        """Build an action from a mapping.

        Accepts both snake_case and camelCase path keys.
        """
        return cls(
            type=str(data.get("type", "")),
            file_path=data.get("file_path", data.get("filePath")),
            content=data.get("content"),
            command=data.get("command"),
            description=data.get("description"),
            id=data.get("id"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, omitting unset fields."""
        data: dict[str, Any] = {"type": self.type}
        for key in ("file_path", "content", "command", "description", "id"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass(frozen=True)
class AIArtifact:
    """An ordered plan of actions; later actions may rely on earlier ones."""

    actions: tuple[AIAction, ...]
    id: str = ""
    title: str = ""
    description: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AIArtifact:
        """Build an artifact from a mapping with an "actions" list."""
        raw_actions = data.get("actions") or []
        return cls(
            actions=tuple(AIAction.from_dict(item) for item in raw_actions),
            id=str(data.get("id", "")),
            title=str(data.get("title", "")),
            description=data.get("description"),
        )

    def __len__(self) -> int:
        return len(self.actions)


@dataclass(frozen=True)
class OperationProgress:
    """A progress update pushed through a callback, never stored."""

    action: str
    status: ProgressStatus
    file_path: str | None = None
    progress: int | None = None
    error: str | None = None


ProgressCallback = Callable[[OperationProgress], None]


@dataclass
class FileOperationResult:
    """Outcome of a single storage call."""

    success: bool
    error: str | None = None
    file_path: str | None = None
    action: str | None = None


@dataclass
class OperationResult(FileOperationResult):
    """Outcome of executing one action."""

    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_file_result(
        cls,
        result: FileOperationResult,
        metadata: dict[str, Any] | None = None,
    ) -> OperationResult:
        """Lift a storage result into an operation result."""
        return cls(
            success=result.success,
            error=result.error,
            file_path=result.file_path,
            action=result.action,
            metadata=metadata or {},
        )

    @classmethod
    def failed(cls, action: AIAction, error: str) -> OperationResult:
        """Result recorded for an action that did not complete."""
        return cls(success=False, error=error, file_path=action.file_path, action=action.type)


@dataclass
class BatchOperationResult:
    """Outcome of an artifact or concurrent batch."""

    success: bool
    results: list[OperationResult]
    total_operations: int
    successful_operations: int
    failed_operations: int
    errors: list[str]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "total_operations": self.total_operations,
            "successful_operations": self.successful_operations,
            "failed_operations": self.failed_operations,
            "errors": self.errors,
        }


@dataclass
class OperationContext:
    """Collaborators for one operation session, owned by the caller."""

    workspace_id: str
    file_service: FileService
    editor_service: EditorService
    validation_service: ValidationService
    event_bus: EventBusService
    error_handler: ErrorHandlingService
    user_id: str | None = None
