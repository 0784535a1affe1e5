"""File service backed by a directory on disk."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from actionflow.actions.models import FileOperationResult
from actionflow.core.error_handling import ErrorHandlingService
from actionflow.core.errors import ErrorContext
from actionflow.services.boundaries import WorkspaceBoundary, WorkspaceBoundaryError
from actionflow.services.protocols import (
    FileCreateRequest,
    FileDeleteRequest,
    FileUpdateRequest,
)

if TYPE_CHECKING:
    from actionflow.core.logging import StructuredLogger


class LocalFileService:
    """Stores workspace files under a root directory.

    Write failures come back as unsuccessful results carrying a user-facing
    message; reads raise a FileOperationError. Paths refused by the
    workspace boundary raise WorkspaceBoundaryError from every method.
    """

    def __init__(
        self,
        root: Path,
        error_handler: ErrorHandlingService | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            root: Workspace root directory (created if missing).
            error_handler: Normalizes storage failures.
            logger: Structured logger instance.
        """
        root.mkdir(parents=True, exist_ok=True)
        self.boundary = WorkspaceBoundary(root)
        self._error_handler = error_handler or ErrorHandlingService(logger=logger)
        self._logger = logger

    @property
    def root(self) -> Path:
        return self.boundary.root

    async def create_file(self, request: FileCreateRequest) -> FileOperationResult:
        try:
            target = self.boundary.validate_path(request.file_path)
            target.parent.mkdir(parents=True, exist_ok=True)
            # "x" fails if the file already exists
            with target.open("x", encoding="utf-8", newline="") as f:
                f.write(request.content)
        except WorkspaceBoundaryError as e:
            self._log_refusal(e, "create", request.workspace_id)
            raise
        except Exception as e:
            return self._failure(e, "create", request.workspace_id, request.file_path)

        if self._logger:
            self._logger.info(
                f"File created successfully: {request.file_path}",
                workspace_id=request.workspace_id,
                content_length=len(request.content),
            )
        return FileOperationResult(success=True, file_path=request.file_path, action="create")

    async def update_file(self, request: FileUpdateRequest) -> FileOperationResult:
        try:
            target = self.boundary.validate_path(request.file_path)
            if not target.is_file():
                raise FileNotFoundError(f"File does not exist: {request.file_path}")
            target.write_text(request.content, encoding="utf-8", newline="")
        except WorkspaceBoundaryError as e:
            self._log_refusal(e, "update", request.workspace_id)
            raise
        except Exception as e:
            return self._failure(e, "update", request.workspace_id, request.file_path)

        if self._logger:
            self._logger.info(
                f"File updated successfully: {request.file_path}",
                workspace_id=request.workspace_id,
                content_length=len(request.content),
            )
        return FileOperationResult(success=True, file_path=request.file_path, action="update")

    async def delete_file(self, request: FileDeleteRequest) -> FileOperationResult:
        try:
            target = self.boundary.validate_path(request.file_path)
            target.unlink()
        except WorkspaceBoundaryError as e:
            self._log_refusal(e, "delete", request.workspace_id)
            raise
        except Exception as e:
            return self._failure(e, "delete", request.workspace_id, request.file_path)

        if self._logger:
            self._logger.info(
                f"File deleted successfully: {request.file_path}",
                workspace_id=request.workspace_id,
            )
        return FileOperationResult(success=True, file_path=request.file_path, action="delete")

    async def file_exists(self, workspace_id: str, file_path: str) -> bool:
        if not self.boundary.is_inside(file_path):
            if self._logger:
                self._logger.warning(
                    f"Existence check outside workspace: {file_path}",
                    workspace_id=workspace_id,
                )
            return False
        return (self.root / file_path).is_file()

    async def list_files(self, workspace_id: str) -> list[str]:
        return sorted(
            path.relative_to(self.root).as_posix()
            for path in self.root.rglob("*")
            if path.is_file() and ".git" not in path.relative_to(self.root).parts
        )

    async def get_file_content(self, workspace_id: str, file_path: str) -> str:
        try:
            return self.boundary.validate_path(file_path).read_text(encoding="utf-8")
        except Exception as e:
            handled = self._error_handler.handle_file_operation_error(
                e, ErrorContext(operation="read", file_path=file_path, workspace_id=workspace_id)
            )
            if self._logger:
                self._logger.error(
                    f"Error reading file content: {file_path}",
                    error=handled.log_details(),
                )
            raise handled from e

    def _log_refusal(
        self, error: WorkspaceBoundaryError, operation: str, workspace_id: str
    ) -> None:
        if self._logger:
            self._logger.warning(
                f"File {operation} refused: {error.attempted_path}",
                workspace_id=workspace_id,
                error=error.log_details(),
            )

    def _failure(
        self,
        error: Exception,
        operation: str,
        workspace_id: str,
        file_path: str,
    ) -> FileOperationResult:
        handled = self._error_handler.handle_file_operation_error(
            error,
            ErrorContext(operation=operation, file_path=file_path, workspace_id=workspace_id),
        )
        if self._logger:
            self._logger.error(
                f"File {operation} failed: {file_path}",
                error=handled.log_details(),
            )
        return FileOperationResult(
            success=False,
            error=handled.user_message,
            file_path=file_path,
            action=operation,
        )
