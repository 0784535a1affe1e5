"""Structured logging for ActionFlow.

Provides:
- JSON-formatted log output
- Context-aware logging (workspace, user)
- Log level management
- Action lifecycle logging
- Retry and batch summary logging
"""

from __future__ import annotations

import json
import sys
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TextIO


class LogLevel(Enum):
    """Log levels."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def from_name(cls, name: str) -> LogLevel:
        """Resolve a level from a case-insensitive name.

        Accepts "warn" as a synonym of "warning".

        Raises:
            ValueError: If the name is not a known level.
        """
        normalized = name.strip().upper()
        if normalized == "WARN":
            normalized = "WARNING"
        try:
            return cls[normalized]
        except KeyError as e:
            raise ValueError(f"Unknown log level: {name}") from e


@dataclass
class LogEntry:
    """A structured log entry."""

    timestamp: str
    level: str
    message: str
    component: str
    event_type: str | None = None
    workspace_id: str | None = None
    duration_ms: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        """Convert to JSON string."""
        data = {k: v for k, v in asdict(self).items() if v is not None}
        # Remove empty extra dict
        if "extra" in data and not data["extra"]:
            del data["extra"]
        return json.dumps(data, default=str)

    def to_human_readable(self) -> str:
        """Convert to human-readable format."""
        parts = [f"[{self.timestamp}]", f"[{self.level}]", f"[{self.component}]"]
        if self.event_type:
            parts.append(f"[{self.event_type}]")
        parts.append(self.message)
        return " ".join(parts)


class StructuredLogger:
    """Structured logger for the pipeline.

    Logs events in JSON format with consistent structure. Satisfies the
    Logger collaborator contract (error/warn/info/debug) used by the
    services and strategies.
    """

    def __init__(
        self,
        component: str,
        level: LogLevel = LogLevel.INFO,
        output: TextIO | None = None,
        json_format: bool = True,
    ) -> None:
        """Initialize logger.

        Args:
            component: Component name (orchestrator, events, files, editor, ...)
            level: Minimum log level
            output: Output stream (defaults to stderr)
            json_format: Whether to use JSON format
        """
        self.component = component
        self.level = level
        self.output = output or sys.stderr
        self.json_format = json_format
        self._context: dict[str, Any] = {}

    def set_context(self, **kwargs: Any) -> None:
        """Set persistent context for all log entries."""
        self._context.update(kwargs)

    def clear_context(self) -> None:
        """Clear persistent context."""
        self._context.clear()

    def with_context(self, **kwargs: Any) -> StructuredLogger:
        """Create a new logger with additional context.

        Args:
            **kwargs: Context key-value pairs

        Returns:
            New logger instance with merged context
        """
        new_logger = StructuredLogger(
            component=self.component,
            level=self.level,
            output=self.output,
            json_format=self.json_format,
        )
        new_logger._context = {**self._context, **kwargs}
        return new_logger

    def child(self, component: str) -> StructuredLogger:
        """Create a logger for a sub-component sharing output and context."""
        new_logger = self.with_context()
        new_logger.component = component
        return new_logger

    def _log(
        self,
        level: LogLevel,
        message: str,
        event_type: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Internal log method."""
        if level.value < self.level.value:
            return

        duration_ms = kwargs.pop("duration_ms", None)

        # Merge context with kwargs
        extra = {**self._context, **kwargs}

        entry = LogEntry(
            timestamp=datetime.now(UTC).isoformat(),
            level=level.name,
            message=message,
            component=self.component,
            event_type=event_type,
            workspace_id=extra.pop("workspace_id", None),
            duration_ms=duration_ms,
            extra=extra,
        )

        if self.json_format:
            self.output.write(entry.to_json() + "\n")
        else:
            self.output.write(entry.to_human_readable() + "\n")
        self.output.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(LogLevel.WARNING, message, **kwargs)

    warn = warning

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self._log(LogLevel.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        """Log critical message."""
        self._log(LogLevel.CRITICAL, message, **kwargs)

    # Specialized logging methods

    def log_action_start(
        self,
        action_type: str,
        file_path: str | None,
        attempt: int = 1,
    ) -> None:
        """Log the start of an action execution attempt.

        Args:
            action_type: Action tag (create, edit, delete, ...)
            file_path: Target path, if any
            attempt: Attempt number (1-indexed)
        """
        self._log(
            LogLevel.DEBUG,
            f"Executing {action_type} action",
            event_type="action_start",
            action_type=action_type,
            file_path=file_path,
            attempt=attempt,
        )

    def log_action_result(
        self,
        action_type: str,
        file_path: str | None,
        success: bool,
        duration_ms: int,
        error: str | None = None,
    ) -> None:
        """Log the outcome of an action.

        Args:
            action_type: Action tag
            file_path: Target path, if any
            success: Whether the action succeeded
            duration_ms: Total duration including retries
            error: Error message on failure (truncated to 200 chars)
        """
        self._log(
            LogLevel.INFO if success else LogLevel.WARNING,
            f"Action {action_type} {'succeeded' if success else 'failed'}",
            event_type="action_result",
            action_type=action_type,
            file_path=file_path,
            success=success,
            duration_ms=duration_ms,
            error=error[:200] if error else None,
        )

    def log_retry(
        self,
        action_type: str,
        attempt: int,
        delay_ms: int,
        reason: str,
    ) -> None:
        """Log a retry being scheduled.

        Args:
            action_type: Action tag
            attempt: Attempt number that just failed
            delay_ms: Backoff delay before the next attempt
            reason: Failure message that triggered the retry
        """
        self._log(
            LogLevel.INFO,
            f"Retrying {action_type} after attempt {attempt}",
            event_type="retry",
            action_type=action_type,
            attempt=attempt,
            delay_ms=delay_ms,
            reason=reason[:200] if reason else "",
        )

    def log_batch_summary(
        self,
        mode: str,
        total: int,
        successful: int,
        failed: int,
        duration_ms: int | None = None,
    ) -> None:
        """Log a batch (artifact or concurrent) summary.

        Args:
            mode: "artifact" or "concurrent"
            total: Total actions in the batch
            successful: Number of successful actions
            failed: Number of failed or skipped actions
            duration_ms: Batch duration in milliseconds
        """
        self._log(
            LogLevel.INFO,
            f"Batch completed: {successful}/{total} succeeded",
            event_type="batch_summary",
            mode=mode,
            total=total,
            successful=successful,
            failed=failed,
            duration_ms=duration_ms,
        )


def create_logger(
    component: str,
    level: LogLevel = LogLevel.INFO,
    json_format: bool = True,
    output: TextIO | None = None,
) -> StructuredLogger:
    """Create a structured logger.

    Args:
        component: Component name
        level: Minimum log level
        json_format: Whether to use JSON format
        output: Output stream (defaults to stderr)

    Returns:
        Configured logger
    """
    return StructuredLogger(
        component=component,
        level=level,
        json_format=json_format,
        output=output,
    )


# Loggers for each component
_loggers: dict[str, StructuredLogger] = {}


def get_logger(component: str) -> StructuredLogger:
    """Get or create a logger for a component.

    Args:
        component: Component name

    Returns:
        Logger instance
    """
    if component not in _loggers:
        _loggers[component] = create_logger(component)
    return _loggers[component]


def reset_loggers() -> None:
    """Reset all cached loggers. Useful for testing."""
    _loggers.clear()


def configure_logging(
    level: LogLevel = LogLevel.INFO,
    json_format: bool = True,
    output: TextIO | None = None,
) -> None:
    """Configure settings of all cached loggers.

    Args:
        level: Minimum log level for all loggers
        json_format: Whether to use JSON format
        output: Output stream
    """
    for logger in _loggers.values():
        logger.level = level
        logger.json_format = json_format
        if output is not None:
            logger.output = output
