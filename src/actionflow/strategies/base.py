"""Base class for per-action-type validation and execution."""

from __future__ import annotations

import posixpath
from abc import ABC, abstractmethod
from typing import ClassVar

from actionflow.actions.models import (
    AIAction,
    OperationContext,
    OperationProgress,
    OperationResult,
    ProgressCallback,
    ProgressStatus,
)
from actionflow.core.errors import (
    BaseError,
    ErrorCode,
    ErrorContext,
    FileOperationError,
    SecurityError,
    ValidationError,
)
from actionflow.core.validation import (
    ContentValidationOptions,
    SecurityLevel,
    SecurityValidationResult,
    detect_language,
)

# Estimated wall time per complexity unit
MS_PER_COMPLEXITY_UNIT = 2000


class FileOperationStrategy(ABC):
    """Validation and execution policy for one kind of action.

    Strategies are tried in ascending priority order; the first whose
    can_handle() returns True handles the action.
    """

    action_type: ClassVar[str]
    priority: ClassVar[int]

    @abstractmethod
    def can_handle(self, action: AIAction) -> bool:
        """Whether this strategy handles the action."""

    @abstractmethod
    async def validate(self, action: AIAction, context: OperationContext) -> None:
        """Raise before any side effect if the action must not run."""

    @abstractmethod
    async def execute(
        self,
        action: AIAction,
        context: OperationContext,
        on_progress: ProgressCallback | None = None,
    ) -> OperationResult:
        """Perform the operation and mirror it into the editor and event bus."""

    def estimate_complexity(self, action: AIAction) -> float:
        """Heuristic cost used for progress weighting."""
        return 1.0

    def estimate_duration_ms(self, action: AIAction) -> float:
        return self.estimate_complexity(action) * MS_PER_COMPLEXITY_UNIT

    def describe(self, action: AIAction) -> str:
        """Human-readable description of the operation."""
        return f"{self.action_type} operation on {action.file_path or 'unknown file'}"

    # Shared validation

    async def validate_common(self, action: AIAction, context: OperationContext) -> None:
        """Validate action structure and workspace access.

        Raises:
            ValidationError: If the action is malformed.
            SecurityError: If the workspace may not be accessed.
        """
        action_result = context.validation_service.validate_ai_action(action)
        if not action_result.valid:
            raise ValidationError(
                f"Action validation failed: {', '.join(action_result.errors)}",
                self._error_context(action, context),
                code=ErrorCode.INVALID_ACTION,
            )

        workspace_result = context.validation_service.validate_workspace_access(
            context.workspace_id, context.user_id
        )
        if not workspace_result.valid:
            raise SecurityError(
                f"Workspace access denied: {', '.join(workspace_result.errors)}",
                self._error_context(action, context),
                code=ErrorCode.UNAUTHORIZED_ACCESS,
            )

    def require_file_path(self, action: AIAction, purpose: str) -> str:
        if not action.file_path:
            raise ValidationError(
                f"File path is required for file {purpose}",
                code=ErrorCode.INVALID_ACTION,
            )
        return action.file_path

    def require_content(self, action: AIAction, purpose: str) -> str:
        if action.content is None:
            raise ValidationError(
                f"Content is required for file {purpose}",
                code=ErrorCode.INVALID_ACTION,
            )
        return action.content

    def check_file_path(self, action: AIAction, context: OperationContext) -> None:
        """Raise if the target path fails path validation."""
        result = context.validation_service.validate_file_path(action.file_path or "")
        if not result.valid:
            raise self._rejection(
                f"Invalid file path: {', '.join(result.errors)}",
                result,
                ErrorCode.INVALID_FILE_PATH,
                action,
                context,
            )

    def check_content(self, action: AIAction, context: OperationContext) -> None:
        """Raise if the content fails validation for the target's language."""
        result = context.validation_service.validate_file_content(
            action.content or "",
            ContentValidationOptions(file_type=detect_language(action.file_path or "")),
        )
        if not result.valid:
            raise self._rejection(
                f"Invalid content: {', '.join(result.errors)}",
                result,
                ErrorCode.INVALID_CONTENT,
                action,
                context,
            )

    async def require_existence(
        self,
        action: AIAction,
        context: OperationContext,
        should_exist: bool,
    ) -> None:
        """Check the existence precondition of the target file."""
        file_path = action.file_path or ""
        exists = await context.file_service.file_exists(context.workspace_id, file_path)
        if exists and not should_exist:
            raise FileOperationError(
                f"File already exists: {file_path}",
                self._error_context(action, context),
                code=ErrorCode.FILE_ALREADY_EXISTS,
            )
        if not exists and should_exist:
            raise FileOperationError(
                f"File does not exist: {file_path}",
                self._error_context(action, context),
                code=ErrorCode.FILE_NOT_FOUND,
            )

    # Execution helpers

    def emit_progress(
        self,
        action: AIAction,
        status: ProgressStatus,
        progress: int | None = None,
        error: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        if on_progress is None:
            return
        on_progress(
            OperationProgress(
                action=self.action_type,
                status=status,
                file_path=action.file_path,
                progress=progress,
                error=error,
            )
        )

    def fail(
        self,
        error: Exception,
        operation: str,
        action: AIAction,
        context: OperationContext,
        on_progress: ProgressCallback | None = None,
    ) -> BaseError:
        """Report a failed execution and return the normalized error to raise."""
        self.emit_progress(action, ProgressStatus.FAILED, None, str(error), on_progress)
        if isinstance(error, SecurityError):
            return error
        return context.error_handler.handle_file_operation_error(
            error,
            ErrorContext(
                operation=operation,
                file_path=action.file_path,
                workspace_id=context.workspace_id,
                user_id=context.user_id,
            ),
        )

    @staticmethod
    def file_name(file_path: str) -> str:
        return posixpath.basename(file_path) or file_path

    @staticmethod
    def _error_context(action: AIAction, context: OperationContext) -> ErrorContext:
        return ErrorContext(
            operation="validate",
            file_path=action.file_path,
            workspace_id=context.workspace_id,
            user_id=context.user_id,
        )

    def _rejection(
        self,
        message: str,
        result: SecurityValidationResult,
        code: ErrorCode,
        action: AIAction,
        context: OperationContext,
    ) -> BaseError:
        error_context = self._error_context(action, context)
        if result.security_level is not SecurityLevel.DANGER:
            return ValidationError(message, error_context, code=code)

        if "Directory traversal" in result.threats:
            security_code = ErrorCode.PATH_TRAVERSAL
        elif code is ErrorCode.INVALID_CONTENT:
            security_code = ErrorCode.DANGEROUS_CONTENT
        else:
            security_code = ErrorCode.SECURITY_VIOLATION
        return SecurityError(message, error_context, code=security_code)
