"""Strategy for overwriting existing files."""

from __future__ import annotations

from actionflow.actions.models import (
    AIAction,
    OperationContext,
    OperationResult,
    ProgressCallback,
    ProgressStatus,
)
from actionflow.core.errors import ErrorCode, FileOperationError
from actionflow.core.validation import detect_language
from actionflow.events.models import SOURCE_AI, EventFactory
from actionflow.services.protocols import FileUpdateRequest
from actionflow.strategies.base import FileOperationStrategy


class EditFileStrategy(FileOperationStrategy):
    """Replaces the content of a file that must already exist.

    The current content is read first and returned as previous_content
    so callers can offer an undo.
    """

    action_type = "edit"
    priority = 2

    def can_handle(self, action: AIAction) -> bool:
        return action.type == "edit"

    async def validate(self, action: AIAction, context: OperationContext) -> None:
        self.require_file_path(action, "editing")
        self.require_content(action, "editing")
        self.check_file_path(action, context)
        self.check_content(action, context)
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
        content = action.content or ""

        try:
            previous_content = await context.file_service.get_file_content(
                context.workspace_id, file_path
            )
            self.emit_progress(action, ProgressStatus.RUNNING, 20, on_progress=on_progress)

            file_type = detect_language(file_path)
            sanitized = context.validation_service.sanitize_content(content, file_type)
            self.emit_progress(action, ProgressStatus.RUNNING, 40, on_progress=on_progress)

            result = await context.file_service.update_file(
                FileUpdateRequest(
                    workspace_id=context.workspace_id,
                    file_path=file_path,
                    content=sanitized,
                )
            )
            self.emit_progress(action, ProgressStatus.RUNNING, 60, on_progress=on_progress)

            if not result.success:
                raise FileOperationError(
                    result.error or "File update failed",
                    code=ErrorCode.FILE_WRITE_ERROR,
                )

            context.editor_service.update_file_from_ai(file_path, sanitized)
            self.emit_progress(action, ProgressStatus.RUNNING, 80, on_progress=on_progress)

            context.event_bus.emit(
                EventFactory.file_updated(
                    file_path,
                    sanitized,
                    context.workspace_id,
                    SOURCE_AI,
                    previous_content,
                )
            )
            self.emit_progress(action, ProgressStatus.COMPLETED, 100, on_progress=on_progress)

            return OperationResult.from_file_result(
                result,
                {
                    "file_type": file_type,
                    "sanitized": sanitized != content,
                    "previous_content": previous_content,
                },
            )
        except Exception as e:
            raise self.fail(e, "edit", action, context, on_progress) from e

    def estimate_complexity(self, action: AIAction) -> float:
        # Reading the previous content makes edits costlier than creates
        size = len(action.content or "")
        return 1.5 + min(size / 8000, 4)
