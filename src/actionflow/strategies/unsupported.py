"""Catch-all strategy rejecting action types nothing else handles."""

from __future__ import annotations

from actionflow.actions.models import (
    AIAction,
    OperationContext,
    OperationResult,
    ProgressCallback,
)
from actionflow.core.errors import ErrorCode, ErrorContext, ValidationError
from actionflow.strategies.base import FileOperationStrategy


class UnsupportedOperationStrategy(FileOperationStrategy):
    """Matches every action and always fails validation.

    Registered with the highest priority value so it is consulted last.
    """

    action_type = "unsupported"
    priority = 1000

    def can_handle(self, action: AIAction) -> bool:
        return True

    async def validate(self, action: AIAction, context: OperationContext) -> None:
        raise ValidationError(
            f"Unsupported operation type: {action.type}",
            ErrorContext(
                operation="validate",
                file_path=action.file_path,
                workspace_id=context.workspace_id,
            ),
            code=ErrorCode.INVALID_ACTION,
        )

    async def execute(
        self,
        action: AIAction,
        context: OperationContext,
        on_progress: ProgressCallback | None = None,
    ) -> OperationResult:
        raise ValidationError(
            "Operation not supported",
            code=ErrorCode.INVALID_ACTION,
        )
