"""Strategy for creating new files."""

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
from actionflow.services.protocols import FileCreateRequest, OpenFileRequest
from actionflow.strategies.base import FileOperationStrategy


class CreateFileStrategy(FileOperationStrategy):
    """Creates a file that must not exist yet.

    Handles both the "create" and the generic "file" action types.
    """

    action_type = "create"
    priority = 1

    def can_handle(self, action: AIAction) -> bool:
        return action.type in ("create", "file")

    async def validate(self, action: AIAction, context: OperationContext) -> None:
        self.require_file_path(action, "creation")
        self.require_content(action, "creation")
        self.check_file_path(action, context)
        self.check_content(action, context)
        await self.validate_common(action, context)
        await self.require_existence(action, context, should_exist=False)

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
            file_type = detect_language(file_path)
            sanitized = context.validation_service.sanitize_content(content, file_type)
            self.emit_progress(action, ProgressStatus.RUNNING, 25, on_progress=on_progress)

            result = await context.file_service.create_file(
                FileCreateRequest(
                    workspace_id=context.workspace_id,
                    file_path=file_path,
                    content=sanitized,
                )
            )
            self.emit_progress(action, ProgressStatus.RUNNING, 50, on_progress=on_progress)

            if not result.success:
                raise FileOperationError(
                    result.error or "File creation failed",
                    code=ErrorCode.FILE_WRITE_ERROR,
                )

            context.editor_service.open_file_from_ai(
                OpenFileRequest(
                    path=file_path,
                    name=self.file_name(file_path),
                    content=sanitized,
                    language=file_type,
                )
            )
            self.emit_progress(action, ProgressStatus.RUNNING, 75, on_progress=on_progress)

            context.event_bus.emit(
                EventFactory.file_created(file_path, sanitized, context.workspace_id, SOURCE_AI)
            )
            self.emit_progress(action, ProgressStatus.COMPLETED, 100, on_progress=on_progress)

            return OperationResult.from_file_result(
                result,
                {"file_type": file_type, "sanitized": sanitized != content},
            )
        except Exception as e:
            raise self.fail(e, "create", action, context, on_progress) from e

    def estimate_complexity(self, action: AIAction) -> float:
        size = len(action.content or "")
        return 1 + min(size / 10000, 3)
