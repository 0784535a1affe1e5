"""Collaborator contracts and their implementations."""

from actionflow.services.boundaries import WorkspaceBoundary, WorkspaceBoundaryError
from actionflow.services.editor import FileTab, InMemoryEditorService
from actionflow.services.http_files import HttpFileService
from actionflow.services.local_files import LocalFileService
from actionflow.services.protocols import (
    EditorService,
    FileCreateRequest,
    FileDeleteRequest,
    FileService,
    FileUpdateRequest,
    Logger,
    OpenFileRequest,
)

__all__ = [
    # Contracts
    "FileService",
    "EditorService",
    "Logger",
    "FileCreateRequest",
    "FileUpdateRequest",
    "FileDeleteRequest",
    "OpenFileRequest",
    # Storage
    "LocalFileService",
    "HttpFileService",
    "WorkspaceBoundary",
    "WorkspaceBoundaryError",
    # Editor
    "FileTab",
    "InMemoryEditorService",
]
