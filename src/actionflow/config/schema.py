"""YAML schema validation for actionflow.yaml configuration files."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from actionflow.core.validation import (
    DEFAULT_ALLOWED_EXTENSIONS,
    DEFAULT_MAX_CONTENT_SIZE,
    DEFAULT_MAX_PATH_LENGTH,
)

CONFIG_FILE_NAME = "actionflow.yaml"


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigParseError(ConfigError):
    """Error parsing YAML configuration."""

    pass


class ConfigValidationError(ConfigError):
    """Error validating configuration schema."""

    pass


@dataclass
class OrchestratorConfig:
    """Orchestrator execution settings (times in ms)."""

    max_concurrent_operations: int = 5
    operation_timeout: int = 30000
    retry_attempts: int = 3
    retry_delay: int = 1000


@dataclass
class ValidationConfig:
    """Validation service defaults."""

    max_path_length: int = DEFAULT_MAX_PATH_LENGTH
    max_content_size: int = DEFAULT_MAX_CONTENT_SIZE
    allowed_extensions: list[str] = field(
        default_factory=lambda: sorted(DEFAULT_ALLOWED_EXTENSIONS)
    )
    allow_absolute_paths: bool = False
    allow_executable_content: bool = False
    blocked_patterns: list[re.Pattern[str]] = field(default_factory=list)


@dataclass
class EventsConfig:
    """Event bus settings."""

    history_size: int = 1000
    middleware: bool = False


@dataclass
class ErrorsConfig:
    """Error handling settings."""

    history_size: int = 100


@dataclass
class ActionflowConfig:
    """Complete actionflow.yaml configuration."""

    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    events: EventsConfig = field(default_factory=EventsConfig)
    errors: ErrorsConfig = field(default_factory=ErrorsConfig)


def _parse_yaml(content: str) -> dict[str, Any]:
    """Parse YAML content into a dictionary.

    Args:
        content: Raw YAML string.

    Returns:
        Parsed dictionary.

    Raises:
        ConfigParseError: If YAML parsing fails.
    """
    try:
        result = yaml.safe_load(content)
        if result is None:
            return {}
        if not isinstance(result, dict):
            raise ConfigParseError("Configuration must be a YAML mapping")
        return result
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Failed to parse YAML: {e}") from e


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    if name not in data or data[name] is None:
        return {}
    section = data[name]
    if not isinstance(section, dict):
        raise ConfigValidationError(f"{name} must be a mapping")
    return section


def _positive_int(section: dict[str, Any], prefix: str, key: str, default: int) -> int:
    value = section.get(key, default)
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigValidationError(f"{prefix}.{key} must be a positive integer")
    return value


def _boolean(section: dict[str, Any], prefix: str, key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigValidationError(f"{prefix}.{key} must be a boolean")
    return value


def _validate_orchestrator(data: dict[str, Any]) -> OrchestratorConfig:
    """Validate the orchestrator section of configuration.

    Args:
        data: Raw configuration dictionary.

    Returns:
        Validated OrchestratorConfig with defaults if not specified.
    """
    section = _section(data, "orchestrator")
    defaults = OrchestratorConfig()

    retry_delay = section.get("retry_delay", defaults.retry_delay)
    if isinstance(retry_delay, bool) or not isinstance(retry_delay, int) or retry_delay < 0:
        raise ConfigValidationError(
            "orchestrator.retry_delay must be a non-negative integer"
        )

    return OrchestratorConfig(
        max_concurrent_operations=_positive_int(
            section,
            "orchestrator",
            "max_concurrent_operations",
            defaults.max_concurrent_operations,
        ),
        operation_timeout=_positive_int(
            section, "orchestrator", "operation_timeout", defaults.operation_timeout
        ),
        retry_attempts=_positive_int(
            section, "orchestrator", "retry_attempts", defaults.retry_attempts
        ),
        retry_delay=retry_delay,
    )


def _validate_extensions(extensions: Any) -> list[str]:
    """Validate the allowed extension list.

    Raises:
        ConfigValidationError: If an entry is not a dotted extension.
    """
    if not isinstance(extensions, list) or len(extensions) == 0:
        raise ConfigValidationError(
            "validation.allowed_extensions must be a non-empty list"
        )

    validated = []
    for i, ext in enumerate(extensions):
        if not isinstance(ext, str) or not ext.startswith(".") or len(ext) < 2:
            raise ConfigValidationError(
                f"validation.allowed_extensions[{i}] must be an extension like '.py'"
            )
        validated.append(ext.lower())
    return validated


def _validate_blocked_patterns(patterns: Any) -> list[re.Pattern[str]]:
    """Compile blocked path patterns.

    Raises:
        ConfigValidationError: If a pattern is not a valid regex.
    """
    if not isinstance(patterns, list):
        raise ConfigValidationError("validation.blocked_patterns must be a list")

    compiled = []
    for i, pattern in enumerate(patterns):
        if not isinstance(pattern, str) or not pattern:
            raise ConfigValidationError(
                f"validation.blocked_patterns[{i}] must be a non-empty string"
            )
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise ConfigValidationError(
                f"validation.blocked_patterns[{i}] is not a valid regex: {e}"
            ) from e
    return compiled


def _validate_validation(data: dict[str, Any]) -> ValidationConfig:
    """Validate the validation section of configuration.

    Args:
        data: Raw configuration dictionary.

    Returns:
        Validated ValidationConfig with defaults if not specified.
    """
    section = _section(data, "validation")
    defaults = ValidationConfig()

    extensions = defaults.allowed_extensions
    if "allowed_extensions" in section:
        extensions = _validate_extensions(section["allowed_extensions"])

    blocked: list[re.Pattern[str]] = []
    if "blocked_patterns" in section:
        blocked = _validate_blocked_patterns(section["blocked_patterns"])

    return ValidationConfig(
        max_path_length=_positive_int(
            section, "validation", "max_path_length", defaults.max_path_length
        ),
        max_content_size=_positive_int(
            section, "validation", "max_content_size", defaults.max_content_size
        ),
        allowed_extensions=extensions,
        allow_absolute_paths=_boolean(
            section, "validation", "allow_absolute_paths", defaults.allow_absolute_paths
        ),
        allow_executable_content=_boolean(
            section,
            "validation",
            "allow_executable_content",
            defaults.allow_executable_content,
        ),
        blocked_patterns=blocked,
    )


def _validate_events(data: dict[str, Any]) -> EventsConfig:
    """Validate the events section of configuration."""
    section = _section(data, "events")
    defaults = EventsConfig()
    return EventsConfig(
        history_size=_positive_int(section, "events", "history_size", defaults.history_size),
        middleware=_boolean(section, "events", "middleware", defaults.middleware),
    )


def _validate_errors(data: dict[str, Any]) -> ErrorsConfig:
    """Validate the errors section of configuration."""
    section = _section(data, "errors")
    return ErrorsConfig(
        history_size=_positive_int(
            section, "errors", "history_size", ErrorsConfig().history_size
        ),
    )


def parse_config(content: str) -> ActionflowConfig:
    """Parse and validate actionflow.yaml configuration content.

    Args:
        content: Raw YAML string.

    Returns:
        Validated ActionflowConfig object.

    Raises:
        ConfigParseError: If YAML parsing fails.
        ConfigValidationError: If schema validation fails.
    """
    data = _parse_yaml(content)

    return ActionflowConfig(
        orchestrator=_validate_orchestrator(data),
        validation=_validate_validation(data),
        events=_validate_events(data),
        errors=_validate_errors(data),
    )


def load_config(path: Path) -> ActionflowConfig:
    """Load and validate actionflow.yaml configuration from a file.

    Args:
        path: Path to actionflow.yaml file.

    Returns:
        Validated ActionflowConfig object.

    Raises:
        ConfigParseError: If file reading or YAML parsing fails.
        ConfigValidationError: If schema validation fails.
    """
    try:
        content = path.read_text()
    except OSError as e:
        raise ConfigParseError(f"Failed to read configuration file: {e}") from e

    return parse_config(content)


def find_config(start_dir: Path) -> Path | None:
    """Find actionflow.yaml in start_dir or any of its parents.

    Args:
        start_dir: Directory to start searching from.

    Returns:
        Path to the configuration file, or None if not found.
    """
    current = start_dir.resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None
