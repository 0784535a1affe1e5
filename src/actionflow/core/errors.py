"""Standardized error taxonomy for AI action processing.

Every failure that leaves the pipeline is one of:
ValidationError, SecurityError, FileOperationError, NetworkError,
AIProcessingError or InternalSystemError. Each carries a closed
ErrorCode, a severity, a retryable flag and a context snapshot.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Closed set of error codes."""

    # Validation
    INVALID_FILE_PATH = "INVALID_FILE_PATH"
    INVALID_CONTENT = "INVALID_CONTENT"
    INVALID_ACTION = "INVALID_ACTION"
    VALIDATION_FAILED = "VALIDATION_FAILED"

    # Security
    SECURITY_VIOLATION = "SECURITY_VIOLATION"
    PATH_TRAVERSAL = "PATH_TRAVERSAL"
    UNAUTHORIZED_ACCESS = "UNAUTHORIZED_ACCESS"
    DANGEROUS_CONTENT = "DANGEROUS_CONTENT"

    # File operations
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FILE_ALREADY_EXISTS = "FILE_ALREADY_EXISTS"
    FILE_READ_ERROR = "FILE_READ_ERROR"
    FILE_WRITE_ERROR = "FILE_WRITE_ERROR"
    FILE_DELETE_ERROR = "FILE_DELETE_ERROR"

    # Network
    NETWORK_ERROR = "NETWORK_ERROR"
    API_ERROR = "API_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"

    # AI processing
    AI_PARSING_ERROR = "AI_PARSING_ERROR"
    AI_ACTION_FAILED = "AI_ACTION_FAILED"
    AI_CONTEXT_ERROR = "AI_CONTEXT_ERROR"
    AI_RESPONSE_ERROR = "AI_RESPONSE_ERROR"

    # System
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    SYSTEM_ERROR = "SYSTEM_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Where and when an error happened."""

    operation: str | None = None
    file_path: str | None = None
    workspace_id: str | None = None
    user_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    stack_trace: str | None = None
    additional_data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {"timestamp": self.timestamp.isoformat()}
        for key in ("operation", "file_path", "workspace_id", "user_id", "stack_trace"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.additional_data:
            result["additional_data"] = self.additional_data
        return result


# Generic messages shown when an error is not flagged user-friendly
GENERIC_USER_MESSAGES: dict[str, str] = {
    "validation": "The provided input is invalid. Please check your data and try again.",
    "security": "Security validation failed. This operation is not allowed.",
    "file": "File operation failed. Please check the file path and permissions.",
    "network": "Network error occurred. Please check your connection and try again.",
    "ai": "AI processing failed. Please try again or contact support.",
}
DEFAULT_USER_MESSAGE = "An unexpected error occurred. Please try again or contact support."


class BaseError(Exception):
    """Base class for all standardized pipeline errors."""

    default_code: ErrorCode = ErrorCode.UNKNOWN_ERROR
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    retryable: bool = False
    user_friendly: bool = False
    category: str = "system"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
        code: ErrorCode | None = None,
    ) -> None:
        """Initialize BaseError.

        Args:
            message: Error message.
            context: Where the error happened (a fresh one is created if omitted).
            cause: The underlying exception, if any.
            code: Overrides the class default code.
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context = context or ErrorContext()
        self.cause = cause
        if self.context.stack_trace is None:
            source = cause if cause is not None else self
            self.context.stack_trace = "".join(
                traceback.format_stack(limit=8)
                if source.__traceback__ is None
                else traceback.format_tb(source.__traceback__)
            )
        if cause is not None:
            self.__cause__ = cause

    @property
    def name(self) -> str:
        """Class name of the error."""
        return type(self).__name__

    @property
    def user_message(self) -> str:
        """Message suitable for display to an end user."""
        if self.user_friendly:
            return self.message
        return GENERIC_USER_MESSAGES.get(self.category, DEFAULT_USER_MESSAGE)

    def log_details(self) -> dict[str, Any]:
        """Details for structured logging."""
        details: dict[str, Any] = {
            "name": self.name,
            "message": self.message,
            "code": self.code.value,
            "severity": self.severity.value,
            "category": self.category,
            "retryable": self.retryable,
            "context": self.context.to_dict(),
        }
        if self.cause is not None:
            details["cause"] = {
                "name": type(self.cause).__name__,
                "message": str(self.cause),
            }
        return details

    def to_dict(self) -> dict[str, Any]:
        """Serializable representation."""
        return {
            "name": self.name,
            "message": self.message,
            "code": self.code.value,
            "severity": self.severity.value,
            "category": self.category,
            "retryable": self.retryable,
            "user_friendly": self.user_friendly,
            "user_message": self.user_message,
            "context": self.context.to_dict(),
        }


class ValidationError(BaseError):
    """Input failed structural or format validation."""

    default_code = ErrorCode.VALIDATION_FAILED
    severity = ErrorSeverity.MEDIUM
    retryable = False
    user_friendly = True
    category = "validation"


class SecurityError(BaseError):
    """Input was rejected by a security rule."""

    default_code = ErrorCode.SECURITY_VIOLATION
    severity = ErrorSeverity.HIGH
    retryable = False
    user_friendly = False
    category = "security"


class FileOperationError(BaseError):
    """A storage operation failed."""

    default_code = ErrorCode.FILE_WRITE_ERROR
    severity = ErrorSeverity.MEDIUM
    retryable = True
    user_friendly = True
    category = "file"


class NetworkError(BaseError):
    """A transport-level failure talking to a remote collaborator."""

    default_code = ErrorCode.NETWORK_ERROR
    severity = ErrorSeverity.MEDIUM
    retryable = True
    user_friendly = True
    category = "network"


class AIProcessingError(BaseError):
    """Processing of an AI response or action failed."""

    default_code = ErrorCode.AI_ACTION_FAILED
    severity = ErrorSeverity.HIGH
    retryable = True
    user_friendly = True
    category = "ai"


class InternalSystemError(BaseError):
    """Unexpected failure with no more specific classification."""

    default_code = ErrorCode.SYSTEM_ERROR
    severity = ErrorSeverity.CRITICAL
    retryable = False
    user_friendly = False
    category = "system"


class OperationTimeoutError(NetworkError):
    """An operation exceeded its time budget."""

    default_code = ErrorCode.TIMEOUT_ERROR

    def __init__(
        self,
        timeout_ms: int,
        context: ErrorContext | None = None,
    ) -> None:
        """Initialize OperationTimeoutError.

        Args:
            timeout_ms: The budget that was exceeded, in milliseconds.
            context: Where the timeout happened.
        """
        super().__init__(f"Operation timed out after {timeout_ms}ms", context)
        self.timeout_ms = timeout_ms
