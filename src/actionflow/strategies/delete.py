"""Strategy for deleting files."""

from __future__ import annotations

from actionflow.actions.models import (
    AIAction,
    OperationContext,
    OperationResult,
    ProgressCallback,
    ProgressStatus,
)
from actionflow.core.errors import ErrorCode, FileOperationError
from actionflow.events.models import SOURCE_AI, EventFactory
from actionflow.services.protocols import FileDeleteRequest
from actionflow.strategies.base import FileOperationStrategy


class DeleteFileStrategy(FileOperationStrategy):
    """Deletes a file that must exist and closes its editor tab."""

    action_type = "delete"
    priority = 3

    def can_handle(self, action: AIAction) -> bool:
        return action.type == "delete"

    async def validate(self, action: AIAction, context: OperationContext) -> None:
        self.require_file_path(action, "deletion")
        self.check_file_path(action, context)
        await self.validate_common(action, context)
        await self.require_existence(action, context, should_exist=True)

    async def execute(
        self,
        action: AIAction,
        context: OperationContext,
        on_progress: ProgressCallback | None = None,
    ) -> OperationResult:
        self.emit_progress(action, ProgressStatus.RUNNING, 0, on_progress=on_progress)
        file_path = action.file_path or ""

        try:
            result = await context.file_service.delete_file(
                FileDeleteRequest(workspace_id=context.workspace_id, file_path=file_path)
            )
            self.emit_progress(action, ProgressStatus.RUNNING, 50, on_progress=on_progress)

            if not result.success:
                raise FileOperationError(
                    result.error or "File deletion failed",
                    code=ErrorCode.FILE_DELETE_ERROR,
                )

            context.editor_service.close_file(file_path)
            self.emit_progress(action, ProgressStatus.RUNNING, 75, on_progress=on_progress)

            context.event_bus.emit(
                EventFactory.file_deleted(file_path, context.workspace_id, SOURCE_AI)
            )
            self.emit_progress(action, ProgressStatus.COMPLETED, 100, on_progress=on_progress)

            return OperationResult.from_file_result(result)
        except Exception as e:
            raise self.fail(e, "delete", action, context, on_progress) from e

    def estimate_complexity(self, action: AIAction) -> float:
        return 0.5
