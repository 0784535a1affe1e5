"""File service backed by a remote HTTP storage API.

Endpoints (relative to base_url):
- POST   /files/create   {workspaceId, filePath, content}
- PUT    /files/update   {workspaceId, filePath, content}
- DELETE /files/delete   {workspaceId, filePath}
- GET    /files/exists   ?workspaceId&filePath -> {exists}
- GET    /files/list     ?workspaceId -> {files}
- GET    /files/content  ?workspaceId&filePath -> {content}

Cancelling the awaiting task aborts the in-flight request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from actionflow.actions.models import FileOperationResult
from actionflow.core.errors import ErrorContext
from actionflow.services.protocols import (
    FileCreateRequest,
    FileDeleteRequest,
    FileUpdateRequest,
)

if TYPE_CHECKING:
    from actionflow.core.error_handling import ErrorHandlingService
    from actionflow.core.logging import StructuredLogger

DEFAULT_TIMEOUT_SECONDS = 30.0


class HttpFileService:
    """Async httpx client for the storage API."""

    def __init__(
        self,
        base_url: str,
        error_handler: ErrorHandlingService,
        logger: StructuredLogger | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            base_url: API root, e.g. http://localhost:5000/api
            error_handler: Normalizes transport and status failures
            logger: Structured logger instance
            timeout: Per-request timeout in seconds
            transport: Optional transport override (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self._error_handler = error_handler
        self._logger = logger
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> HttpFileService:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._logger:
            self._logger.debug(f"HTTP Request: {method} {url}")
        response = await self._client.request(method, url, **kwargs)
        if self._logger:
            self._logger.debug(
                f"HTTP Response: {response.status_code} {url}",
                status=response.status_code,
            )
        response.raise_for_status()
        return response

    async def _write(
        self,
        method: str,
        url: str,
        operation: str,
        workspace_id: str,
        file_path: str,
        body: dict[str, Any],
    ) -> FileOperationResult:
        try:
            await self._request(method, url, json=body)
        except httpx.HTTPError as e:
            handled = self._error_handler.handle_file_operation_error(
                e,
                ErrorContext(
                    operation=operation, file_path=file_path, workspace_id=workspace_id
                ),
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

        if self._logger:
            self._logger.info(
                f"File {operation} succeeded: {file_path}",
                workspace_id=workspace_id,
            )
        return FileOperationResult(success=True, file_path=file_path, action=operation)

    async def create_file(self, request: FileCreateRequest) -> FileOperationResult:
        return await self._write(
            "POST",
            "/files/create",
            "create",
            request.workspace_id,
            request.file_path,
            {
                "workspaceId": request.workspace_id,
                "filePath": request.file_path,
                "content": request.content,
            },
        )

    async def update_file(self, request: FileUpdateRequest) -> FileOperationResult:
        return await self._write(
            "PUT",
            "/files/update",
            "update",
            request.workspace_id,
            request.file_path,
            {
                "workspaceId": request.workspace_id,
                "filePath": request.file_path,
                "content": request.content,
            },
        )

    async def delete_file(self, request: FileDeleteRequest) -> FileOperationResult:
        return await self._write(
            "DELETE",
            "/files/delete",
            "delete",
            request.workspace_id,
            request.file_path,
            {"workspaceId": request.workspace_id, "filePath": request.file_path},
        )

    async def file_exists(self, workspace_id: str, file_path: str) -> bool:
        try:
            response = await self._request(
                "GET",
                "/files/exists",
                params={"workspaceId": workspace_id, "filePath": file_path},
            )
            return response.json().get("exists") is True
        except (httpx.HTTPError, ValueError) as e:
            if self._logger:
                self._logger.warning(
                    f"Error checking file existence: {file_path}",
                    error=str(e),
                )
            return False

    async def list_files(self, workspace_id: str) -> list[str]:
        try:
            response = await self._request(
                "GET", "/files/list", params={"workspaceId": workspace_id}
            )
            return list(response.json().get("files") or [])
        except (httpx.HTTPError, ValueError) as e:
            if self._logger:
                self._logger.error(
                    f"Error listing files for workspace: {workspace_id}",
                    error=str(e),
                )
            return []

    async def get_file_content(self, workspace_id: str, file_path: str) -> str:
        try:
            response = await self._request(
                "GET",
                "/files/content",
                params={"workspaceId": workspace_id, "filePath": file_path},
            )
            return response.json().get("content") or ""
        except (httpx.HTTPError, ValueError) as e:
            handled = self._error_handler.handle_file_operation_error(
                e,
                ErrorContext(operation="read", file_path=file_path, workspace_id=workspace_id),
            )
            if self._logger:
                self._logger.error(
                    f"Error reading file content: {file_path}",
                    error=handled.log_details(),
                )
            raise handled from e

    async def ping(self) -> bool:
        """Health probe used by network recovery."""
        try:
            response = await self._client.get("/health")
        except httpx.HTTPError:
            return False
        return response.is_success
