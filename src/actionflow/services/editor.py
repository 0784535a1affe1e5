"""In-memory editor state mirroring AI file changes."""

from __future__ import annotations

import posixpath
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from actionflow.core.validation import detect_language
from actionflow.services.protocols import OpenFileRequest

if TYPE_CHECKING:
    from actionflow.core.logging import StructuredLogger


@dataclass
class FileTab:
    """An open document."""

    path: str
    name: str
    content: str
    language: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    original_content: str | None = None
    is_dirty: bool = False
    is_active: bool = False
    is_ai_modified: bool = False
    last_ai_modification: datetime | None = None


class InMemoryEditorService:
    """Open-tab state for one session. Nothing here touches storage."""

    def __init__(self, logger: StructuredLogger | None = None) -> None:
        self._logger = logger
        self._tabs: list[FileTab] = []

    def open_file_from_ai(self, request: OpenFileRequest) -> None:
        """Open (or refresh) a tab for an AI-created file and activate it."""
        tab = self.get_file_by_path(request.path)
        now = datetime.now(UTC)
        if tab is None:
            tab = FileTab(
                path=request.path,
                name=request.name,
                content=request.content,
                language=request.language or detect_language(request.path),
                original_content=request.content,
            )
            self._tabs.append(tab)
        else:
            tab.content = request.content
            tab.is_dirty = False
        tab.is_ai_modified = True
        tab.last_ai_modification = now
        self.set_active_file(request.path)

        if self._logger:
            self._logger.info(
                f"Opened AI-created file: {request.path}",
                language=tab.language,
                content_length=len(request.content),
            )

    def update_file_from_ai(self, path: str, content: str) -> None:
        """Replace a tab's content; opens the file when it is not open yet."""
        tab = self.get_file_by_path(path)
        if tab is None:
            self.open_file_from_ai(
                OpenFileRequest(path=path, name=posixpath.basename(path), content=content)
            )
            return

        tab.content = content
        tab.is_dirty = False
        tab.is_ai_modified = True
        tab.last_ai_modification = datetime.now(UTC)

        if self._logger:
            self._logger.info(
                f"Updated file from AI: {path}",
                content_length=len(content),
            )

    def close_file(self, path: str) -> None:
        """Close a tab; a neighbour becomes active if the closed tab was."""
        for index, tab in enumerate(self._tabs):
            if tab.path != path:
                continue
            del self._tabs[index]
            if tab.is_active and self._tabs:
                neighbour = self._tabs[min(index, len(self._tabs) - 1)]
                neighbour.is_active = True
            if self._logger:
                self._logger.info(f"Closed file: {path}")
            return

    def set_active_file(self, path: str) -> None:
        for tab in self._tabs:
            tab.is_active = tab.path == path

    def get_file_by_path(self, path: str) -> FileTab | None:
        for tab in self._tabs:
            if tab.path == path:
                return tab
        return None

    def get_open_files(self) -> list[FileTab]:
        return list(self._tabs)

    def get_active_file(self) -> FileTab | None:
        for tab in self._tabs:
            if tab.is_active:
                return tab
        return None

    def clear_ai_modification_flags(self) -> None:
        for tab in self._tabs:
            tab.is_ai_modified = False

    def get_editor_statistics(self) -> dict[str, Any]:
        """Summary of open tabs for health reporting."""
        by_language: dict[str, int] = {}
        for tab in self._tabs:
            language = tab.language or "unknown"
            by_language[language] = by_language.get(language, 0) + 1
        active = self.get_active_file()
        return {
            "total_open_files": len(self._tabs),
            "ai_modified_files": sum(1 for t in self._tabs if t.is_ai_modified),
            "dirty_files": sum(1 for t in self._tabs if t.is_dirty),
            "active_file": active.path if active else None,
            "files_by_language": by_language,
        }
