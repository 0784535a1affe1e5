"""Workspace boundary enforcement for local storage.

Ensures file operations only touch paths inside the workspace root.

Rejects:
- Paths resolving outside the root (including through symlinks)
- Paths inside explicitly protected directories
"""

from pathlib import Path

from actionflow.core.errors import ErrorCode, ErrorContext, SecurityError


class WorkspaceBoundaryError(SecurityError):
    """A path resolved outside the workspace."""

    def __init__(self, message: str, attempted_path: str) -> None:
        super().__init__(
            message,
            ErrorContext(operation="resolve", file_path=attempted_path),
            code=ErrorCode.PATH_TRAVERSAL,
        )
        self.attempted_path = attempted_path


class WorkspaceBoundary:
    """Resolves workspace-relative paths and refuses escapes.

    The workspace may only be written below its root. Directories listed
    in protected_dirs (relative to the root) are refused as well.
    """

    def __init__(self, root: Path, protected_dirs: tuple[str, ...] = (".git",)) -> None:
        """Initialize the boundary.

        Args:
            root: Workspace root directory.
            protected_dirs: Root-relative directories that may not be touched.
        """
        self.root = root.resolve()
        self.protected = tuple(self.root / name for name in protected_dirs)

    def _absolute(self, path: Path | str) -> Path:
        if isinstance(path, str):
            path = Path(path)
        if not path.is_absolute():
            return (self.root / path).resolve()
        return path.resolve()

    def validate_path(self, path: Path | str) -> Path:
        """Validate that a path is inside the workspace.

        Args:
            path: Workspace-relative or absolute path.

        Returns:
            Resolved absolute path if valid.

        Raises:
            WorkspaceBoundaryError: If the path escapes the workspace.
        """
        resolved = self._absolute(path)

        try:
            resolved.relative_to(self.root)
        except ValueError as e:
            raise WorkspaceBoundaryError(
                f"Path is outside workspace root: {path}",
                attempted_path=str(path),
            ) from e

        for protected in self.protected:
            if resolved == protected or protected in resolved.parents:
                raise WorkspaceBoundaryError(
                    f"Cannot write to protected directory: {path}",
                    attempted_path=str(path),
                )

        return resolved

    def is_inside(self, path: Path | str) -> bool:
        """Check if a path resolves inside the workspace root."""
        try:
            self._absolute(path).relative_to(self.root)
            return True
        except ValueError:
            return False

    def get_relative_path(self, path: Path | str) -> str:
        """Get the POSIX path relative to the workspace root.

        Raises:
            WorkspaceBoundaryError: If the path is outside the workspace.
        """
        return self.validate_path(path).relative_to(self.root).as_posix()
