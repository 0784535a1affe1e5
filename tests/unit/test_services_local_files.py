"""Unit tests for local storage and workspace boundaries."""

from io import StringIO
from pathlib import Path

import pytest

from actionflow.core.errors import ErrorCode, FileOperationError
from actionflow.core.logging import StructuredLogger
from actionflow.services import (
    FileCreateRequest,
    FileDeleteRequest,
    FileUpdateRequest,
    LocalFileService,
    WorkspaceBoundary,
    WorkspaceBoundaryError,
)

WS = "ws-1"


@pytest.fixture
def service(tmp_path: Path) -> LocalFileService:
    return LocalFileService(tmp_path)


class TestWorkspaceBoundary:
    """Tests for WorkspaceBoundary class."""

    def test_validate_relative_path(self, tmp_path: Path) -> None:
        """Relative paths resolve below the root."""
        boundary = WorkspaceBoundary(tmp_path)
        assert boundary.validate_path("src/main.js") == tmp_path.resolve() / "src" / "main.js"

    def test_validate_absolute_path_inside(self, tmp_path: Path) -> None:
        """Absolute paths inside the root are accepted."""
        boundary = WorkspaceBoundary(tmp_path)
        target = tmp_path.resolve() / "a.txt"
        assert boundary.validate_path(target) == target

    def test_escape_raises(self, tmp_path: Path) -> None:
        """Paths resolving outside the root are refused."""
        boundary = WorkspaceBoundary(tmp_path)
        with pytest.raises(WorkspaceBoundaryError) as exc_info:
            boundary.validate_path("../outside.txt")
        assert "outside workspace root" in str(exc_info.value)
        assert exc_info.value.code is ErrorCode.PATH_TRAVERSAL
        assert exc_info.value.attempted_path == "../outside.txt"

    def test_symlink_escape_raises(self, tmp_path: Path) -> None:
        """A symlink pointing outside does not open a way out."""
        root = tmp_path / "root"
        outside = tmp_path / "outside"
        root.mkdir()
        outside.mkdir()
        (root / "link").symlink_to(outside, target_is_directory=True)

        boundary = WorkspaceBoundary(root)
        with pytest.raises(WorkspaceBoundaryError):
            boundary.validate_path("link/secret.txt")

    def test_protected_directory(self, tmp_path: Path) -> None:
        """The .git directory is protected by default."""
        boundary = WorkspaceBoundary(tmp_path)
        with pytest.raises(WorkspaceBoundaryError, match="protected directory"):
            boundary.validate_path(".git/config")

    def test_is_inside(self, tmp_path: Path) -> None:
        """is_inside reports without raising."""
        boundary = WorkspaceBoundary(tmp_path)
        assert boundary.is_inside("a/b.txt")
        assert not boundary.is_inside("../b.txt")
        assert not boundary.is_inside("/etc/passwd")

    def test_get_relative_path(self, tmp_path: Path) -> None:
        """Relative paths come back in POSIX form."""
        boundary = WorkspaceBoundary(tmp_path)
        assert boundary.get_relative_path(tmp_path / "src" / "app.js") == "src/app.js"


class TestLocalFileServiceWrites:
    """Tests for create, update and delete."""

    @pytest.mark.asyncio
    async def test_create_file(self, service: LocalFileService, tmp_path: Path) -> None:
        """Creating writes the file and any parent directories."""
        result = await service.create_file(FileCreateRequest(WS, "src/app.js", "let x = 1;"))

        assert result.success is True
        assert result.action == "create"
        assert (tmp_path / "src" / "app.js").read_text() == "let x = 1;"

    @pytest.mark.asyncio
    async def test_create_existing_fails(self, service: LocalFileService, tmp_path: Path) -> None:
        """Creating over an existing file leaves it untouched."""
        (tmp_path / "a.txt").write_text("original")

        result = await service.create_file(FileCreateRequest(WS, "a.txt", "new"))

        assert result.success is False
        assert result.error
        assert (tmp_path / "a.txt").read_text() == "original"

    @pytest.mark.asyncio
    async def test_create_outside_workspace(self, tmp_path: Path) -> None:
        """Escaping writes raise the boundary error and are logged."""
        output = StringIO()
        service = LocalFileService(tmp_path / "ws", logger=StructuredLogger("files", output=output))

        with pytest.raises(WorkspaceBoundaryError, match="outside workspace root"):
            await service.create_file(FileCreateRequest(WS, "../evil.txt", "x"))

        assert not (tmp_path / "evil.txt").exists()
        assert "File create refused: ../evil.txt" in output.getvalue()

    @pytest.mark.asyncio
    async def test_protected_writes_raise(self, service: LocalFileService, tmp_path: Path) -> None:
        """Every write into .git is refused with a security error."""
        (tmp_path / ".git" / "hooks").mkdir(parents=True)
        (tmp_path / ".git" / "config").write_text("[core]\n")

        with pytest.raises(WorkspaceBoundaryError):
            await service.create_file(FileCreateRequest(WS, ".git/hooks/pre-commit", "x"))
        with pytest.raises(WorkspaceBoundaryError):
            await service.update_file(FileUpdateRequest(WS, ".git/config", "x"))
        with pytest.raises(WorkspaceBoundaryError):
            await service.delete_file(FileDeleteRequest(WS, ".git/config"))

        assert not (tmp_path / ".git" / "hooks" / "pre-commit").exists()
        assert (tmp_path / ".git" / "config").read_text() == "[core]\n"

    @pytest.mark.asyncio
    async def test_update_file(self, service: LocalFileService, tmp_path: Path) -> None:
        """Updating replaces content."""
        (tmp_path / "a.txt").write_text("old")
        result = await service.update_file(FileUpdateRequest(WS, "a.txt", "new"))
        assert result.success is True
        assert (tmp_path / "a.txt").read_text() == "new"

    @pytest.mark.asyncio
    async def test_update_missing_file(self, service: LocalFileService, tmp_path: Path) -> None:
        """Updating a missing file fails without creating it."""
        result = await service.update_file(FileUpdateRequest(WS, "missing.txt", "x"))
        assert result.success is False
        assert result.error == "File does not exist: missing.txt"
        assert not (tmp_path / "missing.txt").exists()

    @pytest.mark.asyncio
    async def test_delete_file(self, service: LocalFileService, tmp_path: Path) -> None:
        """Deleting removes the file."""
        (tmp_path / "a.txt").write_text("x")
        result = await service.delete_file(FileDeleteRequest(WS, "a.txt"))
        assert result.success is True
        assert not (tmp_path / "a.txt").exists()

    @pytest.mark.asyncio
    async def test_delete_missing_file(self, service: LocalFileService) -> None:
        """Deleting a missing file reports failure."""
        result = await service.delete_file(FileDeleteRequest(WS, "missing.txt"))
        assert result.success is False
        assert result.action == "delete"


class TestLocalFileServiceReads:
    """Tests for existence checks, listing and reads."""

    @pytest.mark.asyncio
    async def test_file_exists(self, service: LocalFileService, tmp_path: Path) -> None:
        """Only regular files inside the workspace exist."""
        (tmp_path / "a.txt").write_text("x")
        (tmp_path / "dir").mkdir()

        assert await service.file_exists(WS, "a.txt") is True
        assert await service.file_exists(WS, "dir") is False
        assert await service.file_exists(WS, "missing.txt") is False
        assert await service.file_exists(WS, "../a.txt") is False

    @pytest.mark.asyncio
    async def test_list_files(self, service: LocalFileService, tmp_path: Path) -> None:
        """Listing is sorted, recursive and skips .git."""
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "b.js").write_text("")
        (tmp_path / "a.txt").write_text("")
        (tmp_path / ".git").mkdir()
        (tmp_path / ".git" / "HEAD").write_text("")

        assert await service.list_files(WS) == ["a.txt", "src/b.js"]

    @pytest.mark.asyncio
    async def test_get_file_content(self, service: LocalFileService, tmp_path: Path) -> None:
        """Reads return the file text."""
        (tmp_path / "a.txt").write_text("hello")
        assert await service.get_file_content(WS, "a.txt") == "hello"

    @pytest.mark.asyncio
    async def test_get_missing_file_raises(self, service: LocalFileService) -> None:
        """Reading a missing file raises a FileOperationError."""
        with pytest.raises(FileOperationError) as exc_info:
            await service.get_file_content(WS, "missing.txt")
        assert exc_info.value.code is ErrorCode.FILE_NOT_FOUND
        assert exc_info.value.context.operation == "read"
