"""Collaborator contracts used by strategies and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from actionflow.actions.models import FileOperationResult
from actionflow.core.error_handling import ErrorReporter


@dataclass(frozen=True)
class FileCreateRequest:
    workspace_id: str
    file_path: str
    content: str


@dataclass(frozen=True)
class FileUpdateRequest:
    workspace_id: str
    file_path: str
    content: str


@dataclass(frozen=True)
class FileDeleteRequest:
    workspace_id: str
    file_path: str


@dataclass(frozen=True)
class OpenFileRequest:
    """Request to open a document in the editor."""

    path: str
    name: str
    content: str
    language: str | None = None


class FileService(Protocol):
    """Persistent storage keyed by (workspace_id, file_path)."""

    async def create_file(self, request: FileCreateRequest) -> FileOperationResult: ...

    async def update_file(self, request: FileUpdateRequest) -> FileOperationResult: ...

    async def delete_file(self, request: FileDeleteRequest) -> FileOperationResult: ...

    async def file_exists(self, workspace_id: str, file_path: str) -> bool: ...

    async def list_files(self, workspace_id: str) -> list[str]: ...

    async def get_file_content(self, workspace_id: str, file_path: str) -> str: ...


class EditorService(Protocol):
    """In-memory open-document state; never persists."""

    def open_file_from_ai(self, request: OpenFileRequest) -> None: ...

    def update_file_from_ai(self, path: str, content: str) -> None: ...

    def close_file(self, path: str) -> None: ...


class Logger(Protocol):
    """Minimal logging contract satisfied by StructuredLogger."""

    def error(self, message: str, **data: Any) -> None: ...

    def warn(self, message: str, **data: Any) -> None: ...

    def info(self, message: str, **data: Any) -> None: ...

    def debug(self, message: str, **data: Any) -> None: ...


__all__ = [
    "FileCreateRequest",
    "FileUpdateRequest",
    "FileDeleteRequest",
    "OpenFileRequest",
    "FileOperationResult",
    "FileService",
    "EditorService",
    "Logger",
    "ErrorReporter",
]
