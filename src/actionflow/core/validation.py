"""Security and format validation for AI-proposed actions.

Validates:
- File paths (traversal, absolute paths, characters, extensions, device names)
- File content (size, binary bytes, dangerous per-language constructs, encoding)
- Action structure and shell commands
- Workspace identifiers

Validation never raises; callers turn an invalid result into an error.
Sanitization returns new strings and is idempotent.
"""

from __future__ import annotations

import json
import posixpath
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, unquote

if TYPE_CHECKING:
    from actionflow.core.logging import StructuredLogger


# Validation constants
DEFAULT_MAX_PATH_LENGTH = 260
DEFAULT_MAX_CONTENT_SIZE = 10 * 1024 * 1024  # 10MB

DEFAULT_ALLOWED_EXTENSIONS = frozenset(
    {
        ".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx", ".json",
        ".css", ".scss", ".sass", ".less",
        ".html", ".htm", ".vue", ".svelte",
        ".md", ".txt", ".yml", ".yaml", ".toml", ".xml", ".csv",
        ".py",
        ".svg", ".png", ".jpg", ".jpeg", ".gif", ".ico", ".webp",
    }
)

RESERVED_NAMES = frozenset(
    {"CON", "PRN", "AUX", "NUL"}
    | {f"COM{i}" for i in range(1, 10)}
    | {f"LPT{i}" for i in range(1, 10)}
)

HIDDEN_FILE_EXCEPTIONS = frozenset({".gitignore", ".env.example"})

PATH_TRAVERSAL_PATTERNS = [
    re.compile(r"\.\."),  # literal
    re.compile(r"%2e%2e", re.IGNORECASE),  # URL encoded
    re.compile(r"%252e%252e", re.IGNORECASE),  # double URL encoded
    re.compile(r"\.%2e", re.IGNORECASE),  # mixed
    re.compile(r"%2e\.", re.IGNORECASE),  # mixed
    re.compile(r"0x2e0x2e", re.IGNORECASE),  # hex encoded
    re.compile(r"\.\\"),  # windows separator
    re.compile(r"\.%5c", re.IGNORECASE),  # URL encoded backslash
    re.compile(r"\.%255c", re.IGNORECASE),  # double encoded backslash
]

INVALID_PATH_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')
WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:[/\\]")
BINARY_CONTENT = re.compile(r"[\x00-\x08\x0e-\x1f\x7f]")

_JAVASCRIPT_PATTERNS = [
    re.compile(r"\beval\s*\(", re.IGNORECASE),
    re.compile(r"\bFunction\s*\("),
    re.compile(r"setTimeout\s*\(\s*[\"'`][^\"'`]*[\"'`]", re.IGNORECASE),
    re.compile(r"setInterval\s*\(\s*[\"'`][^\"'`]*[\"'`]", re.IGNORECASE),
    re.compile(r"document\.write", re.IGNORECASE),
    re.compile(r"innerHTML\s*=", re.IGNORECASE),
    re.compile(r"outerHTML\s*=", re.IGNORECASE),
    re.compile(r"document\.cookie", re.IGNORECASE),
    re.compile(r"window\.location", re.IGNORECASE),
    re.compile(r"location\.href", re.IGNORECASE),
    re.compile(r"location\.replace", re.IGNORECASE),
    re.compile(r"location\.assign", re.IGNORECASE),
    re.compile(r"XMLHttpRequest", re.IGNORECASE),
    re.compile(r"\bfetch\s*\(", re.IGNORECASE),
    re.compile(r"\bimport\s*\(", re.IGNORECASE),
    re.compile(r"\brequire\s*\(", re.IGNORECASE),
]

_HTML_PATTERNS = [
    re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE),
    re.compile(r"<iframe\b[^>]*>", re.IGNORECASE),
    re.compile(r"<object\b[^>]*>", re.IGNORECASE),
    re.compile(r"<embed\b[^>]*>", re.IGNORECASE),
    re.compile(r"<form\b[^>]*>", re.IGNORECASE),
    re.compile(r"\bon\w+\s*=", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
]

_CSS_PATTERNS = [
    re.compile(r"expression\s*\(", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"@import\s+url\s*\(", re.IGNORECASE),
    re.compile(r"behavior\s*:", re.IGNORECASE),
    re.compile(r"-moz-binding", re.IGNORECASE),
]

DANGEROUS_CONTENT_PATTERNS: dict[str, list[re.Pattern[str]]] = {
    "javascript": _JAVASCRIPT_PATTERNS,
    "typescript": _JAVASCRIPT_PATTERNS,
    "html": _HTML_PATTERNS,
    "css": _CSS_PATTERNS,
    "scss": _CSS_PATTERNS,
    "sass": _CSS_PATTERNS,
}

SANITIZE_MARKERS = {
    "javascript": "/* REMOVED: Potentially dangerous code */",
    "html": "<!-- REMOVED: Potentially dangerous HTML -->",
    "css": "/* REMOVED: Potentially dangerous CSS */",
}

LANGUAGE_BY_EXTENSION = {
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "json": "json",
    "html": "html",
    "htm": "html",
    "css": "css",
    "scss": "scss",
    "sass": "sass",
    "md": "markdown",
    "py": "python",
    "java": "java",
    "cpp": "cpp",
    "c": "c",
    "php": "php",
    "rb": "ruby",
    "go": "go",
    "rs": "rust",
    "sh": "shell",
    "yml": "yaml",
    "yaml": "yaml",
    "xml": "xml",
    "sql": "sql",
}

# Binaries whose invocation is refused outright
DANGEROUS_COMMANDS = (
    "rm", "del", "format", "shutdown", "reboot", "halt",
    "sudo", "su", "chmod", "chown", "passwd", "useradd",
    "userdel", "killall", "kill", "pkill", "dd", "fdisk",
    "mkfs", "mount", "umount", "crontab", "at", "batch",
)

_DANGEROUS_COMMAND_PATTERNS = [
    (name, re.compile(rf"(?:^|[\s/]){re.escape(name)}(?:\s|$)"))
    for name in DANGEROUS_COMMANDS
] + [("mkfs", re.compile(r"(?:^|[\s/])mkfs\."))]

COMMAND_INJECTION_PATTERNS = [
    re.compile(r"[;&|`$()]"),  # separators and substitution
    re.compile(r">\s*/dev/null"),  # output redirection
    re.compile(r"\|\s*sh\b"),  # pipe to shell
    re.compile(r"\|\s*bash\b"),
    re.compile(r"wget\s+"),  # network downloads
    re.compile(r"curl\s+.*\|"),
]

WORKSPACE_ID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

VALID_ACTION_TYPES = ("file", "create", "edit", "delete", "shell", "start")
FILE_ACTION_TYPES = ("file", "create", "edit", "delete")
CONTENT_ACTION_TYPES = ("file", "create", "edit")
COMMAND_ACTION_TYPES = ("shell", "start")


class SecurityLevel(Enum):
    """How dangerous a validated input is judged to be."""

    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"

    @property
    def rank(self) -> int:
        """Ordering used for escalation."""
        return _LEVEL_RANK[self]


_LEVEL_RANK = {SecurityLevel.SAFE: 0, SecurityLevel.WARNING: 1, SecurityLevel.DANGER: 2}


@dataclass
class ValidationResult:
    """Result of input validation."""

    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @staticmethod
    def success() -> ValidationResult:
        """Create a successful validation result."""
        return ValidationResult(valid=True, errors=[], warnings=[])

    @staticmethod
    def failure(errors: list[str]) -> ValidationResult:
        """Create a failed validation result."""
        return ValidationResult(valid=False, errors=errors, warnings=[])

    def add_error(self, error: str) -> None:
        """Add an error to the result."""
        self.errors.append(error)
        self.valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning to the result."""
        self.warnings.append(warning)

    def merge(self, other: ValidationResult) -> ValidationResult:
        """Merge another validation result into this one.

        Args:
            other: Another validation result

        Returns:
            Self for chaining
        """
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        if not other.valid:
            self.valid = False
        return self

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary."""
        return {
            "valid": self.valid,
            "errors": self.errors,
            "warnings": self.warnings,
        }


@dataclass
class SecurityValidationResult(ValidationResult):
    """Validation result carrying a security verdict."""

    security_level: SecurityLevel = SecurityLevel.SAFE
    threats: list[str] = field(default_factory=list)

    def escalate(self, level: SecurityLevel) -> None:
        """Raise the security level; never lowers it."""
        if level.rank > self.security_level.rank:
            self.security_level = level

    def add_threat(self, threat: str) -> None:
        """Record a threat, once."""
        if threat not in self.threats:
            self.threats.append(threat)

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["security_level"] = self.security_level.value
        data["threats"] = self.threats
        return data


@dataclass
class FilePathValidationOptions:
    """Per-call overrides for path validation."""

    max_length: int | None = None
    allow_absolute_paths: bool | None = None
    allowed_extensions: Iterable[str] | None = None
    blocked_patterns: list[re.Pattern[str]] | None = None


@dataclass
class ContentValidationOptions:
    """Per-call overrides for content validation."""

    max_size: int | None = None
    file_type: str | None = None
    allow_executable_content: bool | None = None


def detect_language(file_path: str) -> str:
    """Detect a language tag from a file path's extension.

    Args:
        file_path: Path of the file.

    Returns:
        Language tag, "plaintext" when unknown.
    """
    name = posixpath.basename(file_path.replace("\\", "/"))
    if "." not in name:
        return "plaintext"
    extension = name.rsplit(".", 1)[1].lower()
    return LANGUAGE_BY_EXTENSION.get(extension, "plaintext")


def normalize_path(file_path: str) -> str:
    """Normalize separators and collapse redundant segments."""
    return posixpath.normpath(file_path.replace("\\", "/"))


def _action_field(action: Any, *names: str) -> Any:
    """Read a field from an action object or a mapping."""
    for name in names:
        if isinstance(action, Mapping):
            if name in action:
                return action[name]
        elif hasattr(action, name):
            return getattr(action, name)
    return None


class ValidationService:
    """Validates paths, content and actions against security rules.

    Instance defaults come from configuration; per-call options override
    them. All methods return structured results and never raise.
    """

    def __init__(
        self,
        max_path_length: int = DEFAULT_MAX_PATH_LENGTH,
        max_content_size: int = DEFAULT_MAX_CONTENT_SIZE,
        allowed_extensions: Iterable[str] | None = None,
        allow_absolute_paths: bool = False,
        allow_executable_content: bool = False,
        blocked_patterns: list[re.Pattern[str]] | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Initialize the validation service.

        Args:
            max_path_length: Default maximum normalized path length.
            max_content_size: Default maximum content size in characters.
            allowed_extensions: Extension allow-list (with leading dot).
            allow_absolute_paths: Whether absolute paths pass by default.
            allow_executable_content: Whether binary content passes by default.
            blocked_patterns: Extra regexes a path must not match.
            logger: Optional logger for rejected inputs.
        """
        self.max_path_length = max_path_length
        self.max_content_size = max_content_size
        self.allowed_extensions = frozenset(
            ext.lower() for ext in (allowed_extensions or DEFAULT_ALLOWED_EXTENSIONS)
        )
        self.allow_absolute_paths = allow_absolute_paths
        self.allow_executable_content = allow_executable_content
        self.blocked_patterns = list(blocked_patterns or [])
        self._logger = logger

    # Paths

    def validate_file_path(
        self,
        file_path: str,
        options: FilePathValidationOptions | None = None,
    ) -> SecurityValidationResult:
        """Validate a workspace-relative file path.

        All checks run; the security level only ever escalates.

        Args:
            file_path: Path to validate.
            options: Per-call overrides.

        Returns:
            SecurityValidationResult
        """
        options = options or FilePathValidationOptions()
        result = SecurityValidationResult()

        if not file_path or not file_path.strip():
            result.add_error("File path cannot be empty")
            result.add_threat("Empty path")
            result.escalate(SecurityLevel.DANGER)
            return result

        normalized = normalize_path(file_path)
        max_length = options.max_length or self.max_path_length

        if len(normalized) > max_length:
            result.add_error(f"File path too long (max {max_length} characters)")
            result.escalate(SecurityLevel.WARNING)

        for pattern in PATH_TRAVERSAL_PATTERNS:
            if pattern.search(file_path) or pattern.search(normalized):
                result.add_error("Path traversal attack detected")
                result.add_threat("Directory traversal")
                result.escalate(SecurityLevel.DANGER)
                break

        allow_absolute = (
            self.allow_absolute_paths
            if options.allow_absolute_paths is None
            else options.allow_absolute_paths
        )
        if not allow_absolute and (
            normalized.startswith("/") or WINDOWS_DRIVE.match(file_path)
        ):
            result.add_error("Absolute paths are not allowed")
            result.add_threat("Absolute path access")
            result.escalate(SecurityLevel.DANGER)

        if INVALID_PATH_CHARS.search(file_path):
            result.add_error("File path contains invalid characters")
            result.escalate(SecurityLevel.WARNING)

        name = posixpath.basename(normalized)
        stem, extension = posixpath.splitext(name)
        extension = extension.lower()
        allowed = (
            self.allowed_extensions
            if options.allowed_extensions is None
            else frozenset(ext.lower() for ext in options.allowed_extensions)
        )
        if extension and name not in HIDDEN_FILE_EXCEPTIONS and extension not in allowed:
            result.add_error(f"File extension '{extension}' is not allowed")
            result.add_threat("Unauthorized file type")
            result.escalate(SecurityLevel.DANGER)

        if stem.upper() in RESERVED_NAMES:
            result.add_error(f"File name '{stem}' is reserved")
            result.escalate(SecurityLevel.WARNING)

        blocked = self.blocked_patterns + list(options.blocked_patterns or [])
        for pattern in blocked:
            if pattern.search(normalized):
                result.add_error("File path matches blocked pattern")
                result.add_threat("Blocked pattern match")
                result.escalate(SecurityLevel.DANGER)
                break

        if name.startswith(".") and name not in HIDDEN_FILE_EXCEPTIONS:
            result.add_warning("Hidden file detected")
            result.escalate(SecurityLevel.WARNING)

        if result.security_level is SecurityLevel.DANGER and self._logger:
            self._logger.warning(
                "Dangerous file path rejected",
                file_path=file_path,
                threats=result.threats,
            )
        return result

    # Content

    def validate_file_content(
        self,
        content: str,
        options: ContentValidationOptions | None = None,
    ) -> SecurityValidationResult:
        """Validate file content.

        Args:
            content: Content to validate.
            options: Per-call overrides (file_type enables the pattern scan).

        Returns:
            SecurityValidationResult
        """
        options = options or ContentValidationOptions()
        result = SecurityValidationResult()

        max_size = options.max_size or self.max_content_size
        if len(content) > max_size:
            result.add_error(f"Content too large (max {max_size // 1024 // 1024}MB)")
            result.escalate(SecurityLevel.WARNING)

        allow_executable = (
            self.allow_executable_content
            if options.allow_executable_content is None
            else options.allow_executable_content
        )
        if BINARY_CONTENT.search(content):
            if allow_executable:
                result.add_warning("Binary content detected")
                result.escalate(SecurityLevel.WARNING)
            else:
                result.add_error("Binary or executable content detected")
                result.add_threat("Potential malware")
                result.escalate(SecurityLevel.DANGER)

        if options.file_type:
            file_type = options.file_type.lower()
            threats = self.scan_dangerous_patterns(content, file_type)
            for threat in threats:
                result.threats.append(threat)
            if threats:
                result.add_error(f"Potentially dangerous {file_type} content detected")
                result.escalate(SecurityLevel.DANGER)

        if not self._has_valid_encoding(content):
            result.add_warning("Invalid character encoding detected")
            result.escalate(SecurityLevel.WARNING)

        return result

    def scan_dangerous_patterns(self, content: str, file_type: str) -> list[str]:
        """Return one threat entry per dangerous pattern found."""
        patterns = DANGEROUS_CONTENT_PATTERNS.get(file_type.lower(), [])
        return [
            f"Dangerous {file_type} pattern detected"
            for pattern in patterns
            if pattern.search(content)
        ]

    @staticmethod
    def _has_valid_encoding(content: str) -> bool:
        """Check that content survives a percent-encoding round trip."""
        try:
            return unquote(quote(content, safe=""), errors="strict") == content
        except UnicodeError:
            return False

    # Sanitization

    def sanitize_content(self, content: str, file_type: str) -> str:
        """Neutralize dangerous constructs for the given file type.

        Returns a new string; applying it twice yields the same output.

        Args:
            content: Content to sanitize.
            file_type: Language tag (see detect_language).

        Returns:
            Sanitized content.
        """
        file_type = file_type.lower()
        if file_type in ("javascript", "typescript"):
            return self._replace_patterns(content, _JAVASCRIPT_PATTERNS, "javascript")
        if file_type == "html":
            return self._replace_patterns(content, _HTML_PATTERNS, "html")
        if file_type in ("css", "scss", "sass"):
            return self._replace_patterns(content, _CSS_PATTERNS, "css")
        if file_type == "json":
            return self._sanitize_json(content)
        return self._sanitize_generic(content)

    @staticmethod
    def _replace_patterns(
        content: str,
        patterns: list[re.Pattern[str]],
        marker_key: str,
    ) -> str:
        marker = SANITIZE_MARKERS[marker_key]
        sanitized = content
        for pattern in patterns:
            sanitized = pattern.sub(marker, sanitized)
        return sanitized

    def _sanitize_json(self, content: str) -> str:
        """Re-serialize JSON so only JSON structure survives."""
        try:
            parsed = json.loads(content, parse_constant=_reject_json_constant)
        except ValueError:
            return self._sanitize_generic(content)
        return json.dumps(parsed, indent=2, ensure_ascii=False)

    @staticmethod
    def _sanitize_generic(content: str) -> str:
        sanitized = BINARY_CONTENT.sub("", content)
        sanitized = re.sub(r"javascript:", "javascript_REMOVED:", sanitized, flags=re.IGNORECASE)
        sanitized = re.sub(r"vbscript:", "vbscript_REMOVED:", sanitized, flags=re.IGNORECASE)
        return re.sub(
            r"data:text/html", "data:text_html_REMOVED", sanitized, flags=re.IGNORECASE
        )

    # Workspace and actions

    def validate_workspace_access(
        self,
        workspace_id: str,
        user_id: str | None = None,
    ) -> ValidationResult:
        """Validate a workspace identifier.

        Args:
            workspace_id: Workspace identifier (UUID).
            user_id: Requesting user; reserved for ownership checks.

        Returns:
            ValidationResult
        """
        result = ValidationResult()
        if not workspace_id or not workspace_id.strip():
            result.add_error("Workspace ID cannot be empty")
            return result
        if not WORKSPACE_ID_PATTERN.match(workspace_id):
            result.add_error("Invalid workspace ID format")
        return result

    def validate_ai_action(self, action: Any) -> ValidationResult:
        """Validate an action's required fields, path, content and command.

        Accepts an AIAction or an equivalent mapping.

        Args:
            action: The action to validate.

        Returns:
            ValidationResult
        """
        result = ValidationResult()
        if action is None:
            result.add_error("Action cannot be null or undefined")
            return result

        action_type = _action_field(action, "type")
        if not action_type:
            result.add_error("Action type is required")
        elif action_type not in VALID_ACTION_TYPES:
            result.add_error(f"Invalid action type: {action_type}")

        file_path = _action_field(action, "file_path", "filePath")
        if action_type in FILE_ACTION_TYPES:
            if not file_path:
                result.add_error("File path is required for file operations")
            else:
                path_result = self.validate_file_path(file_path)
                if not path_result.valid:
                    result.errors.extend(path_result.errors)
                    result.valid = False

        if action_type in CONTENT_ACTION_TYPES:
            content = _action_field(action, "content")
            if content is None:
                result.add_error("Content is required for file creation/editing")
            elif not isinstance(content, str):
                result.add_error("Content must be a string")
            else:
                file_type = detect_language(file_path) if file_path else "plaintext"
                content_result = self.validate_file_content(
                    content, ContentValidationOptions(file_type=file_type)
                )
                if not content_result.valid:
                    result.errors.extend(content_result.errors)
                    result.valid = False

        if action_type in COMMAND_ACTION_TYPES:
            command = _action_field(action, "command")
            if not command:
                result.add_error("Command is required for shell operations")
            else:
                result.merge(self.validate_shell_command(command))

        return result

    def validate_shell_command(self, command: str) -> ValidationResult:
        """Reject destructive binaries and command-injection constructs.

        Args:
            command: Shell command line.

        Returns:
            ValidationResult
        """
        result = ValidationResult()
        lowered = command.lower()
        seen: set[str] = set()
        for name, pattern in _DANGEROUS_COMMAND_PATTERNS:
            if name not in seen and pattern.search(lowered):
                seen.add(name)
                result.add_error(f"Dangerous command detected: {name}")

        for pattern in COMMAND_INJECTION_PATTERNS:
            if pattern.search(command):
                result.add_error("Command injection pattern detected")
                break

        return result


def _reject_json_constant(value: str) -> Any:
    raise ValueError(f"Non-JSON constant: {value}")
